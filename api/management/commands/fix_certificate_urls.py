"""
Repair stored certificate URLs.

1. localhost URLs -> production backend URLs
2. relative /uploads paths -> full URLs
3. anything else is reported as needing regeneration (optionally probed)

Usage: python manage.py fix_certificate_urls [--dry-run] [--check-remote]
"""
import logging

from django.conf import settings
from django.core.management.base import BaseCommand

from api.certificates import (
    HOSTED,
    PRODUCTION,
    REWRITE_LOCALHOST,
    REWRITE_RELATIVE,
    classify_certificate_url,
    is_reachable,
)
from api.firebase_service import firestore_service

logger = logging.getLogger("api")


class Command(BaseCommand):
    help = "Rewrite localhost/relative certificate URLs onto the production backend"

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them")
        parser.add_argument(
            "--check-remote",
            action="store_true",
            help="Probe unrecognised URLs and count reachable ones as good",
        )
        parser.add_argument(
            "--production-url",
            default=settings.PRODUCTION_BACKEND_URL,
            help="Base URL that localhost and relative links are rewritten onto",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        production_url = options["production_url"].rstrip("/")

        participations = firestore_service.list_participations_with_certificates()
        self.stdout.write(f"Found {len(participations)} certificates to check")

        fixed = 0
        already_good = 0
        needs_regeneration = 0
        failed = 0

        for participation in participations:
            participation_id = participation["id"]
            old_url = participation["certificate"]["url"]
            try:
                action, new_url = classify_certificate_url(old_url, production_url)

                if action in (REWRITE_LOCALHOST, REWRITE_RELATIVE):
                    if not dry_run:
                        firestore_service.update_participation(participation_id, {
                            "certificate": {**participation["certificate"], "url": new_url},
                        })
                    self.stdout.write(f"  {participation_id}: {old_url} -> {new_url}")
                    fixed += 1
                elif action in (HOSTED, PRODUCTION):
                    already_good += 1
                elif options["check_remote"] and is_reachable(old_url):
                    already_good += 1
                else:
                    self.stdout.write(f"  {participation_id}: unknown URL format {old_url}")
                    needs_regeneration += 1
            except Exception as e:
                logger.error(f"Failed to process certificate {participation_id}: {e}")
                self.stderr.write(f"  {participation_id}: failed ({e})")
                failed += 1

        self.stdout.write("Summary:")
        self.stdout.write(f"  Fixed URLs: {fixed}{' (dry run)' if dry_run else ''}")
        self.stdout.write(f"  Already good: {already_good}")
        self.stdout.write(f"  Need regeneration: {needs_regeneration}")
        if failed:
            self.stdout.write(f"  Failed: {failed}")
        self.stdout.write(f"  Total checked: {len(participations)}")

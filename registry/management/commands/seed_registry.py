# registry/management/commands/seed_registry.py
import os

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from registry.models import Donor, Institution, User
from registry.services.audit import log_action

SAMPLE_INSTITUTIONS = ("City Hospital", "Community Center")
SAMPLE_DONORS = (
    # (name prefix, age, blood group, contact, address)
    ("Alice", 28, "A+", "+1000000000", "123 Main St"),
    ("Bob", 35, "O-", "+1000000001", "456 Oak Ave"),
)


def parse_admin_pairs(raw):
    """Parse ``user:pass,user2:pass2``; entries missing either half are skipped."""
    pairs = []
    for item in (raw or "").split(","):
        username, _, password = item.strip().partition(":")
        username = username.strip()
        if username and password:
            pairs.append((username, password))
    return pairs


class Command(BaseCommand):
    help = "Seed password administrators (idempotent) and, optionally, sample donors."

    def add_arguments(self, parser):
        parser.add_argument(
            "--admin", action="append", default=[], metavar="USER:PASS",
            help="Administrator to create or reset; may be repeated. ADMIN_USERS is read as well.",
        )
        parser.add_argument(
            "--samples", action="store_true",
            help="Add sample institutions and donors when no institution exists yet.",
        )

    def handle(self, *args, **opts):
        pairs = parse_admin_pairs(os.getenv("ADMIN_USERS", ""))
        for raw in opts["admin"]:
            parsed = parse_admin_pairs(raw)
            if not parsed:
                raise CommandError(f"--admin expects USER:PASS, got {raw!r}")
            pairs.extend(parsed)

        for username, password in pairs:
            created = self.ensure_admin(username, password)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({'created' if created else 'reset'})"))

        if opts["samples"]:
            if self.seed_samples():
                self.stdout.write(self.style.SUCCESS("Sample institutions and donors added."))
            else:
                self.stdout.write("Institutions already exist; samples skipped.")
        self.stdout.write(self.style.SUCCESS("Registry seeding complete."))

    @transaction.atomic
    def ensure_admin(self, username, password):
        if ":" in username:
            raise CommandError(f"username may not contain ':': {username!r}")
        u = User.objects.filter(username=username).first()
        if u is not None and u.credential_method != User.METHOD_PASSWORD:
            raise CommandError(f"{username!r} is taken by a {u.credential_method} account")
        created = u is None
        if created:
            u = User(username=username, credential_method=User.METHOD_PASSWORD)
        u.role = User.ROLE_ADMIN
        u.is_active = True
        u.set_password(password)
        u.save()
        log_action(actor_id=None, action="admin_seed", object_type="user", object_id=u.pk,
                   detail={"username": username, "created": created})
        return created

    @transaction.atomic
    def seed_samples(self):
        if Institution.objects.exists():
            return False
        for name in SAMPLE_INSTITUTIONS:
            inst = Institution.objects.create(name=name)
            Donor.objects.bulk_create([
                Donor(institution=inst, name=f"{prefix} {name}", age=age, blood_group=group,
                      contact=contact, address=address)
                for prefix, age, group, contact, address in SAMPLE_DONORS
            ])
        return True

from django.core.management.base import BaseCommand
from core.models import CustomUser, Table

DEMO_TABLES = [
    ("Window 1", 2),
    ("Window 2", 2),
    ("Booth A", 4),
    ("Booth B", 4),
    ("Terrace", 6),
    ("Family Table", 8),
]

DEMO_USERS = [
    ("manager", "manager@example.com", True),
    ("guest1", "guest1@example.com", False),
    ("guest2", "guest2@example.com", False),
]


class Command(BaseCommand):
    help = 'Seed the database with demo tables and users'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='password', help='Password for the demo users')

    def handle(self, *args, **options):
        # Create tables
        for name, capacity in DEMO_TABLES:
            table, created = Table.objects.get_or_create(name=name, defaults={'capacity': capacity})
            if created:
                self.stdout.write(f"Creating Table: name={name}, capacity={capacity}")

        # Create users
        for username, email, is_admin in DEMO_USERS:
            if CustomUser.objects.filter(username=username).exists():
                continue
            CustomUser.objects.create_user(
                username=username,
                email=email,
                password=options['password'],
                is_admin=is_admin,
            )
            self.stdout.write(f"Creating User: username={username}, admin={is_admin}")

        self.stdout.write(self.style.SUCCESS('Successfully seeded the database with demo data'))

from backoffice import create_app
from backoffice.models import Car, Customer, MaintenanceProfile, Role, User, db
from backoffice.models.store import atomic
from backoffice.services.auth_service import AuthService
from backoffice.services.fleet_service import FleetService
from backoffice.utils.constants import Role as RoleName
from backoffice.utils.security import generate_hash

DEMO_PASSWORD = "Passw0rd!"


def ensure_user(email: str, full_name: str, role_name: str):
    """
    Ensure a user with `email` exists.
    - If exists: reset password hash and role (idempotent).
    - If not:   create a new user.
    """
    user = db.session.scalar(db.select(User).filter_by(email=email))
    if user is None:
        return AuthService.create_user(email, DEMO_PASSWORD, full_name, role_name)
    with atomic():
        user.password_hash = generate_hash(DEMO_PASSWORD)
        user.role = db.session.scalar(db.select(Role).filter_by(name=role_name))
    return user


def ensure_profile(name: str, mileage_threshold: int, days_threshold: int, description: str):
    profile = db.session.scalar(db.select(MaintenanceProfile).filter_by(name=name))
    if profile is None:
        with atomic() as session:
            profile = MaintenanceProfile(
                name=name,
                mileage_threshold=mileage_threshold,
                days_threshold=days_threshold,
                description=description,
            )
            session.add(profile)
    return profile


def main():
    app = create_app({"SCHEDULER_ENABLED": False})
    with app.app_context():
        # ---- Roles and one demo account per role ----
        AuthService.seed_roles()
        for role_name in (RoleName.ADMIN, RoleName.MANAGER, RoleName.RECEPTION,
                          RoleName.WAREHOUSE, RoleName.ACCOUNTANT, RoleName.MECHANIC):
            ensure_user(f"{role_name.lower()}@rental.local", f"Demo {role_name}", role_name)

        # ---- Maintenance profiles ----
        standard = ensure_profile("Standard", 5000, 90, "Regular service every 5,000 km or 3 months")
        extended = ensure_profile("Extended", 10000, 180, "Extended service every 10,000 km or 6 months")

        # ---- Demo cars and customers (create only if none exist) ----
        if not db.session.scalar(db.select(Car.id).limit(1)):
            for data in (
                {"plate_number": "ABC-1001", "brand": "Toyota", "model": "Corolla", "year": 2022,
                 "category": "sedan", "daily_rate": 45, "mileage": 12000, "maintenance_profile_id": standard.id},
                {"plate_number": "ABC-1002", "brand": "Honda", "model": "Civic", "year": 2023,
                 "category": "sedan", "daily_rate": 50, "mileage": 8000, "maintenance_profile_id": standard.id},
                {"plate_number": "ABC-2001", "brand": "Toyota", "model": "Land Cruiser", "year": 2021,
                 "category": "suv", "daily_rate": 120, "mileage": 40000, "maintenance_profile_id": extended.id},
            ):
                FleetService.create_car(data)

        if not db.session.scalar(db.select(Customer.id).limit(1)):
            FleetService.create_customer({"full_name": "Jane Roe", "national_id": "1001", "phone": "555-0100"})
            FleetService.create_customer({"full_name": "John Doe", "national_id": "1002", "phone": "555-0101"})

        print("✅ Seed complete.")
        print(f"🔑 Demo logins: <role>@rental.local / {DEMO_PASSWORD}  (admin, manager, reception, ...)")


if __name__ == "__main__":
    main()

"""
Load the demo users and project into the configured database.

Run from the repository root: python -m scripts.seed_data
"""
from planejar.db import SessionLocal
from planejar.models import Project, User
from planejar.seed import seed_all


def main() -> None:
    db = SessionLocal()
    try:
        seed_all(db)
        users = db.query(User).count()
        projects = db.query(Project).count()
    finally:
        db.close()

    print(f"Done. Users: {users}, Projects: {projects}")


if __name__ == "__main__":
    main()

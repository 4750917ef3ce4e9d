import logging

from lesson_engine.extensions import db
from seeds.setup_data import seed_all

log = logging.getLogger(__name__)


def main():
    logging.basicConfig(level=logging.INFO)
    try:
        db.drop_all()
        db.create_all()
        data = seed_all(db.session)
        log.info("Database seeded: %d academic year(s), %d class(es)", len(data["years"]), len(data["classes"]))
    finally:
        db.remove_session()


if __name__ == '__main__':
    main()

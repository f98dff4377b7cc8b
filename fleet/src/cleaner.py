import logging
from sqlalchemy import update
from sqlalchemy.orm import Session

from fleet.src.allocator import monotonicNow, utcToday
from fleet.src.db import sessionMaker, DriverCertification
from fleet.src.enums import CertificationStatus

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Cleaner")


def expireCertifications(session: Session) -> int:
    """Move active certifications whose expiry date has passed to CERT_EXPIRED."""
    result = session.execute(
        update(DriverCertification)
        .where(
            DriverCertification.status == CertificationStatus.CERT_ACTIVE.value,
            DriverCertification.expiry_date < utcToday(),
        )
        .values(
            status=CertificationStatus.CERT_EXPIRED.value, updated_at=monotonicNow()
        )
        .execution_options(synchronize_session=False)
    )
    session.commit()
    expiredCount = result.rowcount
    logger.info(
        f"Expired {expiredCount} certifications in "
        f"{DriverCertification.__tablename__} table"
    )
    return expiredCount


def main():
    try:
        with sessionMaker() as session:
            expireCertifications(session)
    except Exception:
        logger.exception("cleaner.py failed")
        raise


if __name__ == "__main__":
    main()

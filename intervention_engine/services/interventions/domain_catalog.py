"""
Domain Catalog

Read-only lookup of behavioral domains. Domains are reference data seeded
by scripts/seed_domains.py; nothing in the intervention services edits them.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from ...models.db_models import BehavioralDomainDB
from .errors import NotFoundError
from .unit_of_work import store_read


class DomainCatalog:

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    @store_read("list_active_domains")
    def list_active(self) -> List[BehavioralDomainDB]:
        return self.db.query(BehavioralDomainDB).filter(
            BehavioralDomainDB.is_active.is_(True)
        ).order_by(BehavioralDomainDB.id).all()

    @store_read("get_domain")
    def get_by_id(self, domain_id: int) -> Optional[BehavioralDomainDB]:
        return self.db.query(BehavioralDomainDB).filter(
            BehavioralDomainDB.id == domain_id
        ).first()

    def require(self, domain_id: int) -> BehavioralDomainDB:
        """Get an active domain or raise NotFoundError."""
        domain = self.get_by_id(domain_id)
        if domain is None or not domain.is_active:
            raise NotFoundError(f"Behavioral domain not found: {domain_id}")
        return domain

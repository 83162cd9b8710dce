"""DAO models"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from gri.models.database import Base


class DAO(Base):
    """A tracked Sputnik DAO; id and contract_id hold the same account id"""
    __tablename__ = "daos"

    id = Column(String(128), primary_key=True)
    contract_id = Column(String(128), unique=True, nullable=False)
    name = Column(String(128), nullable=False)
    member_count = Column(Integer, nullable=False, default=0)
    last_indexed_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<DAO {self.id} ({self.member_count} members)>"

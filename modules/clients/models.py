from sqlalchemy import Column, DateTime, Integer, String

from core.models import Base, TimestampMixin


class Client(Base, TimestampMixin):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    document_number = Column(String(32), nullable=True)
    quote_status = Column(String(16), nullable=False, default="open")
    cancellation_deadline = Column(DateTime, nullable=False)

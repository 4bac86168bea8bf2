from sqlalchemy import Column, String, Integer, DateTime, func
from app.db.session import Base

class User(Base):
    """Contact record for a registered guest. Identity and auth live elsewhere."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

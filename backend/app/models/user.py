"""
Modèle SQLAlchemy pour les utilisateurs (élèves, enseignants, administrateurs).
Un élève est un utilisateur de rôle STUDENT ; le code sert de code d'accès.
"""

import uuid
from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), nullable=True)
    code = Column(String(50), unique=True, nullable=True)      # Code d'accès
    role = Column(String(20), nullable=False, default="STUDENT")  # STUDENT, TEACHER, ADMIN
    parent1_number = Column(String(30), nullable=True)
    parent2_number = Column(String(30), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

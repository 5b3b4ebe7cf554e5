from sqlalchemy import Boolean, Column, Integer, String, Text

from .database import Base


# The table itself is created by migrations.MIGRATIONS.
class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from groupacl.db.base import Base


class UserGroup(Base):
    __tablename__ = "usergroups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, nullable=False, default=0, index=True)
    # Nested-set bounds; lft gives the pre-order position in the tree
    lft = Column(Integer, nullable=False, default=0, index=True)
    rgt = Column(Integer, nullable=False, default=0)
    title = Column(String(100), nullable=False)

    # Relationships
    members = relationship(
        "UserGroupMap", back_populates="group", cascade="all, delete-orphan"
    )


class UserGroupMap(Base):
    __tablename__ = "user_usergroup_map"
    __table_args__ = (UniqueConstraint("user_id", "group_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("usergroups.id"), nullable=False)

    # Relationships
    group = relationship("UserGroup", back_populates="members")

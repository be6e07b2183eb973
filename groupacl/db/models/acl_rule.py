from sqlalchemy import Column, Integer, String, Text

from groupacl.db.base import Base


class AclRule(Base):
    __tablename__ = "acl"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, nullable=False, default=0)
    resource = Column(String(100), unique=True, nullable=False)
    # JSON object: action name -> list of group ids
    rules = Column(Text, nullable=False, default="{}")

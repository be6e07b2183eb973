"""groupacl - hierarchical group-based access control."""

__version__ = "0.1.0"

"""Browse, search and safely rewrite recorded conversation sessions."""

__version__ = "0.1.0"

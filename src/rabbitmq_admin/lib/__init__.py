"""Standalone libraries with no FastAPI or ORM coupling."""

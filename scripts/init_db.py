#!/usr/bin/env python3
"""
Database initialization script for Gadget Vault.

This script creates the database tables.
"""

from sqlmodel import SQLModel

from app.db.base import *  # noqa: F401,F403 - Import all models to register with SQLModel
from app.db.session import engine


def create_db_and_tables():
    """Create database tables."""
    print("Creating database tables...")
    
    SQLModel.metadata.create_all(engine)
    
    print("✅ Database tables created successfully!")
    print(f"Database URL: {engine.url.render_as_string(hide_password=True)}")
    print("\nTables created:")
    for table in SQLModel.metadata.tables.keys():
        print(f"  - {table}")


if __name__ == "__main__":
    create_db_and_tables()

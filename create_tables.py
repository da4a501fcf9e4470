"""
Simple script to create the threads, messages, uploaded_files and analyses tables.
Run this once to set up the tables in your database.

Usage: python create_tables.py
"""

from sqlalchemy import create_engine, inspect
from models import Base, Thread, Message, UploadedFile, Analysis  # Import models to register them
from database import DATABASE_URL, connect_args

TABLES = [Thread.__tablename__, Message.__tablename__, UploadedFile.__tablename__, Analysis.__tablename__]

if __name__ == "__main__":
    print("Creating database tables...")
    engine = create_engine(DATABASE_URL, connect_args=connect_args)

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Verify tables were created
    existing = set(inspect(engine).get_table_names())
    for table in TABLES:
        if table in existing:
            print(f"✓ {table} table created successfully!")
        else:
            print(f"✗ Failed to create {table} table")

    engine.dispose()

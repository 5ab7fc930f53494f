import asyncio
import sys
import os

# Add the current directory to the sys.path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from sqlalchemy import text

from app.core.config import settings
from app.core.database import engine, create_tables


async def init_db():
    print("Starting Database Initialization...", flush=True)

    try:
        # This handles table creation based on the SQLAlchemy models
        print("Creating tables...", flush=True)
        await create_tables(engine)
        print("SUCCESS: All tables created successfully!", flush=True)

        if settings.SEED_DEMO_DATA:
            from app.storage.database import DatabaseStorage
            from app.storage.demo import seed_demo_data
            await seed_demo_data(DatabaseStorage())
            print("Demo data seeded", flush=True)

        # Test connection
        if engine.dialect.name == "postgresql":
            print("Testing connection...", flush=True)
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT version();"))
                row = result.fetchone()
                print(f"Database Version: {row[0]}", flush=True)

    except Exception as e:
        print(f"ERROR: Database initialization failed: {e}", flush=True)
        if "ssl" in str(e).lower():
            print("Hint: If using Supabase/Railway, ensure SSL is required in your connection string or settings.", flush=True)
        raise
    finally:
        await engine.dispose()

if __name__ == "__main__":
    asyncio.run(init_db())

from pymongo import AsyncMongoClient
from beanie import init_beanie
from royaldrive.core.config import settings


async def init_db(database=None, skip_indexes: bool = False):
    """
    Initialize MongoDB connection and Beanie ODM.

    Args:
        database: Optional already-open database handle. Defaults to the
            database named in DATABASE_URL.
        skip_indexes: Do not create the unique/secondary indexes
    """
    if database is None:
        client = AsyncMongoClient(settings.DATABASE_URL)

        # Selecting the database name from the URL or default
        default_db = client.get_default_database(default=settings.DATABASE_NAME)
        db_name = default_db.name
        if not db_name or db_name == "test":
            db_name = settings.DATABASE_NAME
        database = client[db_name]

    # Import models
    from royaldrive.models import DOCUMENT_MODELS

    await init_beanie(
        database=database,
        document_models=DOCUMENT_MODELS,
        skip_indexes=skip_indexes,
    )
    return database

from pumpkin.db.base import DocumentStore
from pumpkin.db.cosmos import CosmosDocumentStore
from pumpkin.db.mongo import MongoDocumentStore

PROVIDERS = {
    CosmosDocumentStore.provider: CosmosDocumentStore,
    MongoDocumentStore.provider: MongoDocumentStore,
}


def create_document_store(settings) -> DocumentStore:
    """Build the store selected by ``DATABASE_PROVIDER``. No I/O happens here."""
    try:
        store_class = PROVIDERS[settings.DATABASE_PROVIDER]
    except KeyError:
        raise ValueError(
            f"Unsupported DATABASE_PROVIDER '{settings.DATABASE_PROVIDER}', "
            f"expected one of: {', '.join(sorted(PROVIDERS))}"
        )
    return store_class(settings)

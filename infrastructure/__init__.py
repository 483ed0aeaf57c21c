"""
Infrastructure Package - external system adapters.

    connection_pool.py     DataSource (async psycopg pool, transactions)
    dataset_repository.py  Content-schema statements for one dataset
    blob.py                Blob Storage archive download
    service_bus.py         Service Bus publish/receive
    authorizer.py          Hosted permission check

Modules are imported directly (``from infrastructure.blob import ...``);
nothing is created at import time.
"""

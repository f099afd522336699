from beanstalk.core.logging import storage_logger
from beanstalk.core.monitoring import update_store_metrics
from beanstalk.crud.prd import InMemoryPrdRepository, PrdRepository


# Process-wide store; tests swap it through app.dependency_overrides
_store: PrdRepository = InMemoryPrdRepository()


def get_store() -> PrdRepository:
    """Dependency returning the PRD repository"""
    return _store


async def get_store_stats(store: PrdRepository) -> dict:
    """Get record counts for health and metrics endpoints"""
    prd_count = await store.count()
    update_store_metrics(prd_count)
    storage_logger.debug("Store stats collected", backend=type(store).__name__, prds=prd_count)
    return {
        "backend": type(store).__name__,
        "prds": prd_count,
    }

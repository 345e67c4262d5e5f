from fastapi import Depends

from ..config import SAGA_COMPENSATE
from ..database import get_store
from ..services.relationships import RelationshipEngine
from ..store import EntityStore


def get_relationship_engine(store: EntityStore = Depends(get_store)) -> RelationshipEngine:
    """Dependency for getting a RelationshipEngine bound to the request's store."""
    return RelationshipEngine(store, compensate=SAGA_COMPENSATE)

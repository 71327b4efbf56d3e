"""
Vector store management endpoints: index, list, remove and clear documents.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.errors import DimensionMismatch, EmbeddingError, ValidationError
from .schemas import (
    IndexDocumentRequest,
    RemoveEntryResponse,
    VectorEntryListResponse,
    VectorEntryResponse,
)
from .services import Services, get_services

router = APIRouter()


@router.post("/{user_id}/documents", response_model=VectorEntryResponse, status_code=status.HTTP_201_CREATED)
def index_document(user_id: str, req: IndexDocumentRequest, services: Services = Depends(get_services)):
    """
    Embed a document and add it to the user's vector store.

    Embedding failures abort the indexing and are reported to the caller.
    """
    try:
        embedding = services.embedding_client.embed(req.content)
        entry = services.vector_stores.for_user(user_id).add(req.content, embedding)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except EmbeddingError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except DimensionMismatch as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{e}. Clear the store before switching embedding models."
        )

    return VectorEntryResponse(id=entry.id, content=entry.content, dimension=entry.dimension)


@router.get("/{user_id}/documents", response_model=VectorEntryListResponse)
def list_documents(user_id: str, services: Services = Depends(get_services)):
    entries = services.vector_stores.for_user(user_id).list()
    return VectorEntryListResponse(
        entries=[VectorEntryResponse(id=e.id, content=e.content, dimension=e.dimension) for e in entries],
        count=len(entries),
        dimension=entries[0].dimension if entries else None,
    )


@router.delete("/{user_id}/documents/{entry_id}", response_model=RemoveEntryResponse)
def remove_document(user_id: str, entry_id: str, services: Services = Depends(get_services)):
    removed = services.vector_stores.for_user(user_id).remove(entry_id)
    return RemoveEntryResponse(removed=removed, id=entry_id)


@router.delete("/{user_id}/documents", status_code=status.HTTP_204_NO_CONTENT)
def clear_documents(user_id: str, services: Services = Depends(get_services)):
    services.vector_stores.for_user(user_id).clear()

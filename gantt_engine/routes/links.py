"""
Link routes for the gantt engine API.
"""

from fastapi import APIRouter, Depends, status

from gantt_engine.logging_config import get_logger
from gantt_engine.schemas import LinkCreate, LinkRead, LinkValidationRead
from gantt_engine.workspace import Workspace, get_workspace

logger = get_logger(__name__)

router = APIRouter()


@router.get("/", response_model=list[LinkRead])
async def list_links(ws: Workspace = Depends(get_workspace)) -> list[LinkRead]:
    return [LinkRead.from_link(link) for link in ws.model.links]


@router.post("/", response_model=LinkRead, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_in: LinkCreate,
    ws: Workspace = Depends(get_workspace),
) -> LinkRead:
    """
    Create a dependency link.

    Self-links, duplicates and links that would close a cycle (through other
    links or through parent/child containment) are rejected.
    """
    source = ws.resolve_task_id(link_in.source)
    target = ws.resolve_task_id(link_in.target)
    logger.info(f"Creating link: {source} -> {target} (type {link_in.type})")
    link = ws.model.add_link(source, target, link_in.type, link_in.lag, link_in.id)
    return LinkRead.from_link(link)


@router.get("/validate", response_model=list[LinkValidationRead])
async def validate_links(ws: Workspace = Depends(get_workspace)) -> list[LinkValidationRead]:
    """Report links whose tasks are missing or identical. Nothing is removed."""
    return [LinkValidationRead.from_validation(result) for result in ws.model.links.validate()]


@router.get("/{link_id}", response_model=LinkRead)
async def get_link(link_id: str, ws: Workspace = Depends(get_workspace)) -> LinkRead:
    return LinkRead.from_link(ws.model.links.get_link(link_id))


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(link_id: str, ws: Workspace = Depends(get_workspace)) -> None:
    ws.model.remove_link(link_id)

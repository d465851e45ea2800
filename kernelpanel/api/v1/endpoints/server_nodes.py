import re
import shlex
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kernelpanel.core.config import get_settings
from kernelpanel.db.repository import Repository
from kernelpanel.db.session import get_db
from kernelpanel.models import ConnectionType, NodeStatus, ServerNode
from kernelpanel.schemas.server_nodes import (
    ServerNodeCreate,
    ServerNodeResponse,
    ServerNodeUpdate,
    SetupSnippetResponse,
)
from kernelpanel.services.audit import write_audit
from kernelpanel.services.auth import AdminContext, get_current_admin

router = APIRouter(prefix="/server-nodes", tags=["server-nodes"], dependencies=[Depends(get_current_admin)])
settings = get_settings()

ENUM_FIELDS = {"connection_type": ConnectionType, "status": NodeStatus}


def _apply(node: ServerNode, data: dict) -> None:
    for key, value in data.items():
        if key in ENUM_FIELDS:
            value = ENUM_FIELDS[key](value)
        setattr(node, key, value)


def setup_snippet(node: ServerNode) -> str:
    """Shell commands an operator pastes on the node host.

    Only the slug reaches the comment line; everything else is shell-quoted.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", node.name.lower()).strip("-") or "node"
    panel_url = settings.public_base_url.rstrip("/")
    return "\n".join(
        [
            f"# Setup for node {slug} ({node.connection_type.value})",
            "docker run -d \\",
            f"  --name {shlex.quote(slug + '-node')} \\",
            "  --restart unless-stopped \\",
            f"  -p {node.port}:{node.port} \\",
            f"  -e {shlex.quote('PANEL_URL=' + panel_url)} \\",
            f"  -e {shlex.quote('NODE_ID=' + node.id)} \\",
            f"  -e NODE_PORT={node.port} \\",
            "  kernelpanel/node:latest",
            f"echo {shlex.quote(f'Panel expects {node.name} at {node.address}:{node.port}')}",
        ]
    )


@router.post("", response_model=ServerNodeResponse, status_code=status.HTTP_201_CREATED)
def create_node(
    payload: ServerNodeCreate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> ServerNode:
    node = ServerNode()
    _apply(node, payload.model_dump())
    Repository(db, ServerNode).put(node)
    write_audit(db, admin.username, "server_node.created", "server_node", node.id, {"address": node.address})
    db.commit()
    db.refresh(node)
    return node


@router.get("", response_model=list[ServerNodeResponse])
def list_nodes(
    status_filter: Optional[str] = Query(default=None, pattern="^(online|offline|error|connecting)$"),
    db: Session = Depends(get_db),
) -> list[ServerNode]:
    criteria = [ServerNode.status == NodeStatus(status_filter)] if status_filter else []
    return Repository(db, ServerNode).list(*criteria, order_by=[ServerNode.name])


@router.get("/{node_id}", response_model=ServerNodeResponse)
def get_node(node_id: str, db: Session = Depends(get_db)) -> ServerNode:
    return Repository(db, ServerNode).get_or_404(node_id, "server_node_not_found")


@router.put("/{node_id}", response_model=ServerNodeResponse)
def update_node(
    node_id: str,
    payload: ServerNodeUpdate,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> ServerNode:
    nodes = Repository(db, ServerNode)
    node = nodes.get_or_404(node_id, "server_node_not_found")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    _apply(node, changes)
    nodes.put(node)
    write_audit(db, admin.username, "server_node.updated", "server_node", node.id, {"fields": sorted(changes)})
    db.commit()
    db.refresh(node)
    return node


@router.delete("/{node_id}")
def delete_node(node_id: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> dict:
    nodes = Repository(db, ServerNode)
    nodes.get_or_404(node_id, "server_node_not_found")
    nodes.delete(node_id)
    write_audit(db, admin.username, "server_node.deleted", "server_node", node_id)
    db.commit()
    return {"ok": True}


@router.get("/{node_id}/setup-snippet", response_model=SetupSnippetResponse)
def get_setup_snippet(node_id: str, db: Session = Depends(get_db)) -> SetupSnippetResponse:
    node = Repository(db, ServerNode).get_or_404(node_id, "server_node_not_found")
    return SetupSnippetResponse(node_id=node.id, snippet=setup_snippet(node))

from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field

from kernelpanel.schemas.base import CamelModel, Port, one_of

ConnectionTypeField = Annotated[str, one_of("grpclib", "websocket", "tcp", "other")]
NodeStatusField = Annotated[str, one_of("online", "offline", "error", "connecting")]

# host name, IPv4 or bracketed IPv6
ADDRESS_PATTERN = r"^[A-Za-z0-9.:\[\]-]+$"


class ServerNodeCreate(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    address: str = Field(min_length=1, max_length=255, pattern=ADDRESS_PATTERN)
    port: Port
    connection_type: ConnectionTypeField = "grpclib"
    consumption_factor: float = Field(default=1.0, ge=0.1, le=10.0)
    status: NodeStatusField = "offline"


class ServerNodeUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    address: Optional[str] = Field(default=None, min_length=1, max_length=255, pattern=ADDRESS_PATTERN)
    port: Optional[Port] = None
    connection_type: Optional[ConnectionTypeField] = None
    consumption_factor: Optional[float] = Field(default=None, ge=0.1, le=10.0)
    status: Optional[NodeStatusField] = None


class ServerNodeResponse(CamelModel):
    id: str
    name: str
    address: str
    port: int
    connection_type: str
    consumption_factor: float
    status: str
    created_at: datetime


class SetupSnippetResponse(CamelModel):
    node_id: str
    snippet: str

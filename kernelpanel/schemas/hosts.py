from datetime import datetime
from typing import Optional

from pydantic import Field

from kernelpanel.schemas.base import CamelModel, JsonText, Port


class ManagedHostCreate(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    host_name: str = ""
    address: str = Field(min_length=1, max_length=255)
    port: Port
    network_config: JsonText = "{}"
    stream_security_config: JsonText = "{}"
    mux_config: JsonText = "{}"
    notes: str = ""


class ManagedHostUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    host_name: Optional[str] = None
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    port: Optional[Port] = None
    network_config: Optional[JsonText] = None
    stream_security_config: Optional[JsonText] = None
    mux_config: Optional[JsonText] = None
    notes: Optional[str] = None


class ManagedHostResponse(CamelModel):
    id: str
    name: str
    host_name: str
    address: str
    port: int
    network_config: str
    stream_security_config: str
    mux_config: str
    notes: str
    created_at: datetime

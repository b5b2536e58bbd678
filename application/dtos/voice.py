"""
Voice signaling wire messages.

Two closed unions, one per direction. Client frames are validated against
``ClientMessage``; anything that does not match a known tag is ignored by
the hub. Relay messages keep unknown fields so they can be forwarded
verbatim.
"""
from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class PeerMeta(_WireModel):
    user_id: str
    name: str


class PeerSummary(_WireModel):
    peer_id: str
    meta: Optional[PeerMeta] = None


# --------------------------- server -> client ---------------------------

class InitMessage(_WireModel):
    type: Literal["init"] = "init"
    peer_id: str
    peers: List[PeerSummary] = Field(default_factory=list)


class PeerJoinMessage(_WireModel):
    type: Literal["peer-join"] = "peer-join"
    peer_id: str


class PeerInfoMessage(_WireModel):
    type: Literal["peer-info"] = "peer-info"
    peer_id: str
    meta: PeerMeta


class PeerLeaveMessage(_WireModel):
    type: Literal["peer-leave"] = "peer-leave"
    peer_id: str


ServerMessage = Union[InitMessage, PeerJoinMessage, PeerInfoMessage, PeerLeaveMessage]


def encode_server_message(message: ServerMessage) -> str:
    # peers without identity carry no "meta" key at all
    return message.model_dump_json(by_alias=True, exclude_none=True)


# --------------------------- client -> server ---------------------------

class _ClientModel(_WireModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")


class IdentityMessage(_ClientModel):
    type: Literal["identity"]
    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1)

    @field_validator("user_id", "name", mode="before")
    @classmethod
    def _coerce_scalar(cls, v: Any) -> Any:
        # numeric ids are common on the client side; zero counts as missing
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            if not v:
                raise ValueError("identity fields must be non-empty")
            if isinstance(v, float) and v.is_integer():
                return str(int(v))
            return str(v)
        return v


class _RelayMessage(_ClientModel):
    target: str = Field(min_length=1)


class OfferMessage(_RelayMessage):
    type: Literal["offer"]
    sdp: Any = None


class AnswerMessage(_RelayMessage):
    type: Literal["answer"]
    sdp: Any = None


class IceCandidateMessage(_RelayMessage):
    type: Literal["ice-candidate"]
    candidate: Any = None


class HangupMessage(_ClientModel):
    type: Literal["hangup"]


RelayMessage = Union[OfferMessage, AnswerMessage, IceCandidateMessage]

ClientMessage = Annotated[
    Union[IdentityMessage, OfferMessage, AnswerMessage, IceCandidateMessage, HangupMessage],
    Field(discriminator="type"),
]

client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)

"""Lexicon document meta-schema.

Pydantic models mirroring the Lexicon schema language, used to decide
whether a ``com.atproto.lexicon.schema`` record is a structurally valid
Lexicon document. :func:`parse_lexicon_doc` is the entry point: it never
raises, and reports every field-level problem it finds as a list of issues.

Each issue is a plain dict::

    {"code": "missing", "path": ["defs", "main", "record", "record"],
     "message": "Field required"}

Examples:
    >>> result = parse_lexicon_doc({
    ...     "lexicon": 1,
    ...     "id": "com.example.fooBar",
    ...     "defs": {"main": {"type": "token"}},
    ... })
    >>> result.ok
    True
    >>> result.doc.defs["main"].type
    'token'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from .syntax import validate_nsid

LEXICON_SCHEMA_NSID = "com.atproto.lexicon.schema"
"""``$type`` (and collection) of Lexicon schema records."""

MAIN_ONLY_TYPES = frozenset(
    {"record", "query", "procedure", "subscription", "permission-set"}
)

StringFormat = Literal[
    "at-identifier",
    "at-uri",
    "cid",
    "datetime",
    "did",
    "handle",
    "language",
    "nsid",
    "record-key",
    "tid",
    "uri",
]


class _LexModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _check_required(required: Optional[list[str]], properties: dict[str, Any]) -> None:
    for name in required or ():
        if name not in properties:
            raise ValueError(f'Required field "{name}" not defined')


##
# Primitives


class LexBoolean(_LexModel):
    type: Literal["boolean"]
    description: Optional[StrictStr] = None
    default: Optional[StrictBool] = None
    const: Optional[StrictBool] = None


class LexInteger(_LexModel):
    type: Literal["integer"]
    description: Optional[StrictStr] = None
    default: Optional[StrictInt] = None
    minimum: Optional[StrictInt] = None
    maximum: Optional[StrictInt] = None
    enum: Optional[list[StrictInt]] = None
    const: Optional[StrictInt] = None


class LexString(_LexModel):
    type: Literal["string"]
    format: Optional[StringFormat] = None
    description: Optional[StrictStr] = None
    default: Optional[StrictStr] = None
    min_length: Optional[StrictInt] = Field(default=None, alias="minLength")
    max_length: Optional[StrictInt] = Field(default=None, alias="maxLength")
    min_graphemes: Optional[StrictInt] = Field(default=None, alias="minGraphemes")
    max_graphemes: Optional[StrictInt] = Field(default=None, alias="maxGraphemes")
    enum: Optional[list[StrictStr]] = None
    const: Optional[StrictStr] = None
    known_values: Optional[list[StrictStr]] = Field(default=None, alias="knownValues")


class LexUnknown(_LexModel):
    type: Literal["unknown"]
    description: Optional[StrictStr] = None


LexPrimitive = Annotated[
    Union[LexBoolean, LexInteger, LexString, LexUnknown],
    Field(discriminator="type"),
]


##
# IPLD types, references and blobs


class LexBytes(_LexModel):
    type: Literal["bytes"]
    description: Optional[StrictStr] = None
    min_length: Optional[StrictInt] = Field(default=None, alias="minLength")
    max_length: Optional[StrictInt] = Field(default=None, alias="maxLength")


class LexCidLink(_LexModel):
    type: Literal["cid-link"]
    description: Optional[StrictStr] = None


class LexRef(_LexModel):
    type: Literal["ref"]
    description: Optional[StrictStr] = None
    ref: StrictStr


class LexRefUnion(_LexModel):
    type: Literal["union"]
    description: Optional[StrictStr] = None
    refs: list[StrictStr]
    closed: Optional[StrictBool] = None


class LexBlob(_LexModel):
    type: Literal["blob"]
    description: Optional[StrictStr] = None
    accept: Optional[list[StrictStr]] = None
    max_size: Optional[StrictInt] = Field(default=None, alias="maxSize")


##
# Containers


class LexArray(_LexModel):
    type: Literal["array"]
    description: Optional[StrictStr] = None
    items: Annotated[
        Union[
            LexBoolean,
            LexInteger,
            LexString,
            LexUnknown,
            LexBytes,
            LexCidLink,
            LexRef,
            LexRefUnion,
            LexBlob,
        ],
        Field(discriminator="type"),
    ]
    min_length: Optional[StrictInt] = Field(default=None, alias="minLength")
    max_length: Optional[StrictInt] = Field(default=None, alias="maxLength")


class LexPrimitiveArray(LexArray):
    items: LexPrimitive


class LexToken(_LexModel):
    type: Literal["token"]
    description: Optional[StrictStr] = None


LexObjectProperty = Annotated[
    Union[
        LexRef,
        LexRefUnion,
        LexBytes,
        LexCidLink,
        LexArray,
        LexBlob,
        LexBoolean,
        LexInteger,
        LexString,
        LexUnknown,
    ],
    Field(discriminator="type"),
]


class LexObject(_LexModel):
    type: Literal["object"]
    description: Optional[StrictStr] = None
    required: Optional[list[StrictStr]] = None
    nullable: Optional[list[StrictStr]] = None
    properties: dict[str, LexObjectProperty] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _required_are_defined(self) -> LexObject:
        _check_required(self.required, self.properties)
        return self


##
# XRPC


class LexXrpcParameters(_LexModel):
    type: Literal["params"]
    description: Optional[StrictStr] = None
    required: Optional[list[StrictStr]] = None
    properties: dict[
        str,
        Annotated[
            Union[LexBoolean, LexInteger, LexString, LexUnknown, LexPrimitiveArray],
            Field(discriminator="type"),
        ],
    ] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _required_are_defined(self) -> LexXrpcParameters:
        _check_required(self.required, self.properties)
        return self


_BodySchema = Annotated[
    Union[LexRef, LexRefUnion, LexObject],
    Field(discriminator="type"),
]


class LexXrpcBody(_LexModel):
    description: Optional[StrictStr] = None
    encoding: StrictStr
    body_schema: Optional[_BodySchema] = Field(default=None, alias="schema")


class LexXrpcSubscriptionMessage(_LexModel):
    description: Optional[StrictStr] = None
    body_schema: Optional[_BodySchema] = Field(default=None, alias="schema")


class LexXrpcError(_LexModel):
    name: StrictStr
    description: Optional[StrictStr] = None


class LexXrpcQuery(_LexModel):
    type: Literal["query"]
    description: Optional[StrictStr] = None
    parameters: Optional[LexXrpcParameters] = None
    output: Optional[LexXrpcBody] = None
    errors: Optional[list[LexXrpcError]] = None


class LexXrpcProcedure(_LexModel):
    type: Literal["procedure"]
    description: Optional[StrictStr] = None
    parameters: Optional[LexXrpcParameters] = None
    input: Optional[LexXrpcBody] = None
    output: Optional[LexXrpcBody] = None
    errors: Optional[list[LexXrpcError]] = None


class LexXrpcSubscription(_LexModel):
    type: Literal["subscription"]
    description: Optional[StrictStr] = None
    parameters: Optional[LexXrpcParameters] = None
    message: Optional[LexXrpcSubscriptionMessage] = None
    errors: Optional[list[LexXrpcError]] = None


##
# Records and permissions


class LexRecord(_LexModel):
    type: Literal["record"]
    description: Optional[StrictStr] = None
    key: Optional[StrictStr] = None
    record: LexObject


class LexPermission(_LexModel):
    # Permission entries carry resource-specific attributes.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: Literal["permission"]
    resource: StrictStr


class LexPermissionSet(_LexModel):
    type: Literal["permission-set"]
    title: Optional[StrictStr] = None
    detail: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    permissions: list[LexPermission]


LexUserType = Annotated[
    Union[
        LexRecord,
        LexPermissionSet,
        LexXrpcQuery,
        LexXrpcProcedure,
        LexXrpcSubscription,
        LexBlob,
        LexArray,
        LexToken,
        LexObject,
        LexBoolean,
        LexInteger,
        LexString,
        LexBytes,
        LexCidLink,
        LexUnknown,
    ],
    Field(discriminator="type"),
]


class LexiconDoc(_LexModel):
    """A structurally valid Lexicon document."""

    lexicon: Literal[1] = 1
    id: StrictStr
    revision: Optional[StrictInt] = None
    description: Optional[StrictStr] = None
    defs: dict[str, LexUserType]

    @field_validator("id")
    @classmethod
    def _id_is_nsid(cls, value: str) -> str:
        error = validate_nsid(value)
        if error is not None:
            raise ValueError(error)
        return value

    @field_validator("defs")
    @classmethod
    def _main_only_types(cls, defs: dict[str, Any]) -> dict[str, Any]:
        for name, definition in defs.items():
            if name != "main" and definition.type in MAIN_ONLY_TYPES:
                raise ValueError(
                    f"Definition {name!r} is a {definition.type}; records, "
                    "procedures, queries, subscriptions and permission sets "
                    "must be the main definition"
                )
        return defs

    def to_record(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible Lexicon dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


##
# Parsing


@dataclass
class ParseResult:
    """Outcome of :func:`parse_lexicon_doc`.

    Exactly one of ``doc`` and ``issues`` is populated.
    """

    doc: LexiconDoc | None = None
    issues: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.doc is not None


def _issue_from_error(error: Any) -> dict[str, Any]:
    return {
        "code": error["type"],
        "path": list(error["loc"]),
        "message": error["msg"],
    }


def parse_lexicon_doc(data: Any) -> ParseResult:
    """Validate *data* as a Lexicon document.

    Args:
        data: Raw record payload, typically a dict decoded from JSON.
            Keys outside the Lexicon language (such as ``$type``) are
            ignored.

    Returns:
        A :class:`ParseResult` carrying either the parsed document or the
        complete, ordered list of field-level issues.
    """
    try:
        doc = LexiconDoc.model_validate(data)
    except ValidationError as exc:
        return ParseResult(issues=[_issue_from_error(e) for e in exc.errors()])
    return ParseResult(doc=doc)

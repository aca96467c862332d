"""Domain codecs: the bridge between documents and typed state.

The migration engine never imports domain types. A codec is handed the
migrated document at the end of a load, and the typed state at the start
of a save.
"""

from typing import Any, Generic, Protocol, Type, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from saveforge.core.exceptions import SaveForgeError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class DecodeError(SaveForgeError):
    """Raised by a codec when a document does not match the domain model."""

    error_code = "decode_error"

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)


@runtime_checkable
class DomainCodec(Protocol[T]):
    """Protocol for domain model codecs."""

    def decode(self, document: dict) -> T:
        """Build typed state from a document.

        Raises:
            DecodeError: If the document does not match the model
        """
        ...

    def encode(self, state: T) -> dict:
        """Convert typed state into a document."""
        ...


class PydanticCodec(Generic[M]):
    """Codec for a pydantic model class.

    Example:
        >>> codec = PydanticCodec(SaveFile)
        >>> state = codec.decode({"version": "2.0.0"})
        >>> codec.encode(state)["version"]
        '2.0.0'
    """

    def __init__(self, model_class: Type[M]):
        self.model_class = model_class

    def decode(self, document: dict) -> M:
        try:
            return self.model_class.model_validate(document)
        except ValidationError as e:
            raise DecodeError(
                f"{self.model_class.__name__}: {e.error_count()} validation error(s)",
                errors=[
                    {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ],
            )

    def encode(self, state: M) -> dict[str, Any]:
        return state.model_dump(mode="json")

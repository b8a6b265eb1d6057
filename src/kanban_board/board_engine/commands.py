"""Command contracts for every board mutation.

Each command kind has a closed field set expressed as a pydantic model with
``extra="forbid"``: an unrecognized key is a validation failure, never a
silent drop.  Wire payloads use camelCase keys (``columnId``, ``newIndex``);
Python code may use either the alias or the snake_case attribute name.

:func:`parse_command` is the single entry point used by the API surface.  It
validates a raw request body, merges in path parameters and returns a frozen
command object ready for :func:`~kanban_board.board_engine.mutations.apply_command`.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, ClassVar, Optional, Union

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..constants import BOARD_TITLE_MAX_LENGTH
from .errors import ValidationError


class CommandKind(str, Enum):
    CREATE_BOARD = "create-board"
    ADD_TASK = "add-task"
    UPDATE_TASK = "update-task"
    MOVE_TASK = "move-task"
    DELETE_TASK = "delete-task"
    ADD_COMMENT = "add-comment"
    REPLACE_COLUMNS = "replace-columns"
    REPLACE_LABELS = "replace-labels"


NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
FiniteStrictFloat = Annotated[StrictFloat, AllowInfNan(False)]


class _Contract(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Body-only contracts
# ---------------------------------------------------------------------------

class TaskPatch(_Contract):
    """Partial task overlay. ``status`` is deliberately absent: use a move."""

    title: Optional[NonEmptyStr] = None
    description: Optional[StrictStr] = None
    assignee_id: Optional[StrictStr] = None
    label_ids: Optional[list[StrictStr]] = None
    estimate: Optional[Union[StrictInt, FiniteStrictFloat]] = None

    @field_validator("title", "label_ids")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    def changes(self) -> dict[str, Any]:
        """Snake_case mapping of the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class CommentBody(_Contract):
    content: NonEmptyStr


class ColumnSpec(_Contract):
    id: NonEmptyStr
    title: Optional[NonEmptyStr] = None


class LabelSpec(_Contract):
    id: NonEmptyStr
    name: StrictStr
    color: StrictStr


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

class CreateBoard(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.CREATE_BOARD

    title: Annotated[StrictStr, Field(min_length=1, max_length=BOARD_TITLE_MAX_LENGTH)]


class AddTask(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.ADD_TASK

    title: NonEmptyStr
    column_id: StrictStr


class UpdateTask(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.UPDATE_TASK

    task_id: StrictStr
    patch: TaskPatch


class MoveTask(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.MOVE_TASK

    task_id: StrictStr
    from_column_id: StrictStr
    to_column_id: StrictStr
    new_index: Annotated[StrictInt, Field(ge=0)]


class DeleteTask(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.DELETE_TASK

    task_id: StrictStr


class AddComment(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.ADD_COMMENT

    task_id: StrictStr
    content: NonEmptyStr
    author_id: StrictStr


class ReplaceColumns(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.REPLACE_COLUMNS

    columns: list[ColumnSpec]


class ReplaceLabels(_Contract):
    kind: ClassVar[CommandKind] = CommandKind.REPLACE_LABELS

    labels: list[LabelSpec]


BoardCommand = Union[AddTask, UpdateTask, MoveTask, DeleteTask, AddComment, ReplaceColumns, ReplaceLabels]


# ---------------------------------------------------------------------------
# Validation entry point
# ---------------------------------------------------------------------------

# Model each request body is validated against, per kind.  Kinds whose body
# is the whole command map to the command itself.
_BODY_CONTRACTS: dict[CommandKind, Optional[type[_Contract]]] = {
    CommandKind.CREATE_BOARD: CreateBoard,
    CommandKind.ADD_TASK: AddTask,
    CommandKind.UPDATE_TASK: TaskPatch,
    CommandKind.MOVE_TASK: MoveTask,
    CommandKind.DELETE_TASK: None,
    CommandKind.ADD_COMMENT: CommentBody,
    CommandKind.REPLACE_COLUMNS: ReplaceColumns,
    CommandKind.REPLACE_LABELS: ReplaceLabels,
}


def _format_loc(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def _convert(exc: PydanticValidationError) -> ValidationError:
    errors = exc.errors()
    for err in errors:
        if err.get("type") == "extra_forbidden":
            field_name = _format_loc(err.get("loc", ()))
            return ValidationError(
                f"Unrecognized field '{field_name}'",
                code="InvalidField",
                field=field_name,
            )
    first = errors[0] if errors else {}
    field_name = _format_loc(first.get("loc", ()))
    msg = str(first.get("msg", "invalid value"))
    return ValidationError(
        f"{field_name}: {msg}" if field_name else msg,
        code="InvalidValue",
        field=field_name or None,
    )


def validate_contract(model: type[_Contract], payload: Any) -> Any:
    """Validate *payload* against *model*, raising :class:`ValidationError`."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise _convert(exc) from exc


def parse_command(kind: CommandKind | str, payload: Any = None, **path_params: str) -> Any:
    """Validate a raw request body and build the command for *kind*.

    Args:
        kind: Command kind (enum member or its string value).
        payload: Decoded JSON body; ``None`` for kinds without a body.
        **path_params: ``task_id`` / ``author_id`` taken from the request
            path or headers rather than the body.

    Returns:
        A frozen command model.

    Raises:
        ValidationError: The body violates the command contract.
    """
    try:
        kind = CommandKind(kind)
    except ValueError as exc:
        raise ValidationError(f"Unknown command kind: {kind}") from exc

    contract = _BODY_CONTRACTS[kind]
    body = validate_contract(contract, {} if payload is None else payload) if contract else None

    if kind is CommandKind.UPDATE_TASK:
        return UpdateTask(task_id=path_params["task_id"], patch=body)
    if kind is CommandKind.DELETE_TASK:
        if payload not in (None, {}):
            raise ValidationError("delete-task takes no body", code="InvalidField")
        return DeleteTask(task_id=path_params["task_id"])
    if kind is CommandKind.ADD_COMMENT:
        return AddComment(
            task_id=path_params["task_id"],
            content=body.content,
            author_id=path_params["author_id"],
        )
    return body

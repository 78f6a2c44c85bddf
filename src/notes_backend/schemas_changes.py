"""Wire schema of the `/changes` reconciliation endpoint.

The request is an untrusted batch of operations, a closed tagged union on the
`operation` field. Parsing is all-or-nothing: one malformed element rejects the
whole request. Field names travel in camelCase (`offlineId`, `lastSyncedAt`).

Identifiers typed `Id` are either an offline id (JSON string chosen by the
client) or a database id (JSON integer assigned by the server).
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

# Last millisecond representable as a datetime (9999-12-31T23:59:59.999Z).
MAX_EPOCH_MS = 253_402_300_799_999
# Store keys are signed 64-bit integers.
MAX_DATABASE_ID = 2**63 - 1

OfflineId = StrictStr
DatabaseId = Annotated[StrictInt, Field(ge=0, le=MAX_DATABASE_ID)]
Id = Union[DatabaseId, StrictStr]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# --- operations -------------------------------------------------------------


class NewLabel(_WireModel):
    offline_id: OfflineId
    name: StrictStr


class NewNote(_WireModel):
    offline_id: OfflineId
    title: StrictStr | None = None
    content: StrictStr
    pinned: StrictBool
    order: StrictInt | None = None
    labels: list[Id] | None = None


class DeleteLabelsOp(_WireModel):
    operation: Literal["DELETE_LABELS"] = "DELETE_LABELS"
    ids: list[DatabaseId]


class CreateLabelsOp(_WireModel):
    operation: Literal["CREATE_LABELS"] = "CREATE_LABELS"
    labels: list[NewLabel]


class DeleteNotesOp(_WireModel):
    operation: Literal["DELETE_NOTES"] = "DELETE_NOTES"
    ids: list[DatabaseId]


class CreateNotesOp(_WireModel):
    operation: Literal["CREATE_NOTES"] = "CREATE_NOTES"
    notes: list[NewNote]


class EditNoteOp(_WireModel):
    """Partial note update: `None` leaves a field unchanged, `labels` replaces the set."""

    operation: Literal["EDIT_NOTE"] = "EDIT_NOTE"
    id: Id
    title: StrictStr | None = None
    content: StrictStr | None = None
    pinned: StrictBool | None = None
    order: StrictInt | None = None
    labels: list[Id] | None = None


class ChangeLabelNameOp(_WireModel):
    operation: Literal["CHANGE_LABEL_NAME"] = "CHANGE_LABEL_NAME"
    id: Id
    name: StrictStr


Operation = Annotated[
    Union[
        DeleteLabelsOp,
        CreateLabelsOp,
        DeleteNotesOp,
        CreateNotesOp,
        EditNoteOp,
        ChangeLabelNameOp,
    ],
    Field(discriminator="operation"),
]


class CurrentData(_WireModel):
    """Database ids the client currently holds; used for tombstone detection."""

    labels: list[DatabaseId]
    notes: list[DatabaseId]


class ChangesRequest(_WireModel):
    operations: list[Operation] = Field(min_length=1)
    # Epoch milliseconds of the previous response's justSyncedAt (0 on first sync).
    last_synced_at: int = Field(ge=0, le=MAX_EPOCH_MS)
    current_data: CurrentData


# --- response ---------------------------------------------------------------


class NoteOut(_WireModel):
    id: int
    title: str | None = None
    content: str
    pinned: bool
    order: int
    user_id: int
    labels: list[int] = Field(default_factory=list)
    created_at: int
    updated_at: int
    # Only set for notes created by this very request.
    offline_id: str | None = None


class LabelOut(_WireModel):
    id: int
    name: str
    owner_id: int
    created_at: int
    updated_at: int
    offline_id: str | None = None


class ChangesData(_WireModel):
    notes: list[NoteOut] = Field(default_factory=list)
    labels: list[LabelOut] = Field(default_factory=list)


class DeletedIds(_WireModel):
    notes: list[int] = Field(default_factory=list)
    labels: list[int] = Field(default_factory=list)


class FailedToEdit(_WireModel):
    notes: list[EditNoteOp] = Field(default_factory=list)
    labels: list[ChangeLabelNameOp] = Field(default_factory=list)


class ChangesResponse(_WireModel):
    data: ChangesData
    deleted: DeletedIds
    failed_to_create: list[str] = Field(default_factory=list)
    failed_to_edit: FailedToEdit
    just_synced_at: int

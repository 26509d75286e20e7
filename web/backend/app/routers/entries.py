"""Entries router -- read and edit policy files under the configured policy root."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from polfile.config import EditorConfig
from polfile.editor import get_all_entries, get_entry, remove_entry, set_entry
from polfile.errors import FormatError, ValidationError
from polfile.gpt.gpt_ini import gpt_ini_path_for, update_gpt_ini_version
from polfile.gpt.version import decode_version
from polfile.models.entry import PolicyEntry
from polfile.models.kinds import ValueKind
from web.backend.app.models.api import (
    ChangeResponse,
    EntryResponse,
    RemoveEntryRequest,
    SetEntryRequest,
    VersionBumpRequest,
    VersionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["entries"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_config() -> EditorConfig:
    try:
        return EditorConfig.from_env()
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Invalid server configuration: {e}",
        ) from e


def _resolve(config: EditorConfig, relative: str) -> Path:
    """Map a client path onto the policy root, refusing anything outside it."""
    if config.policy_root is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="POLFILE_POLICY_ROOT is not configured",
        )
    root = config.policy_root.resolve()
    target = (root / relative).resolve()
    if target == root or not target.is_relative_to(root):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Path '{relative}' is outside the policy root",
        )
    return target


def _gpt_ini_update(config: EditorConfig, target: Path, requested: Optional[bool]) -> Optional[bool]:
    """Disable the gpt.ini bump when that file would sit outside the policy root."""
    root = config.policy_root.resolve()
    gpt_ini = gpt_ini_path_for(target, config.gpt_ini_name).resolve()
    if gpt_ini.is_relative_to(root):
        return requested
    logger.warning("%s is outside the policy root, gpt.ini left alone", gpt_ini)
    return False


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if isinstance(e, FormatError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, FileNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _entry_response(entry: PolicyEntry) -> EntryResponse:
    data = entry.data.hex() if isinstance(entry.data, bytes) else entry.data
    return EntryResponse(
        key=entry.key,
        value_name=entry.value_name,
        kind=entry.kind.display_name,
        data=data,
    )


def _request_data(kind: ValueKind, data):
    if kind == ValueKind.BINARY and isinstance(data, str):
        try:
            return bytes.fromhex(data)
        except ValueError:
            raise ValidationError(f"Binary data must be hexadecimal, got {data!r}") from None
    return data


# ---------------------------------------------------------------------------
# Entry endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/entries",
    response_model=list[EntryResponse],
    summary="List all entries of a policy file",
)
def list_entries(path: str = Query(..., description="Policy file path relative to the policy root")):
    """Return every entry in file order. A missing file has no entries."""
    target = _resolve(_get_config(), path)
    try:
        return [_entry_response(e) for e in get_all_entries(target)]
    except (FormatError, OSError) as e:
        raise _http_error(e) from e


@router.get(
    "/entries/lookup",
    response_model=EntryResponse,
    summary="Get a single entry",
)
def lookup_entry(
    path: str = Query(..., description="Policy file path relative to the policy root"),
    key: str = Query(...),
    value_name: str = Query(""),
):
    """Return one entry by key and value name (case-insensitive)."""
    target = _resolve(_get_config(), path)
    try:
        entry = get_entry(target, key, value_name)
    except (FormatError, OSError) as e:
        raise _http_error(e) from e
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry '{key}\\{value_name}' not found",
        )
    return _entry_response(entry)


@router.put(
    "/entries",
    response_model=ChangeResponse,
    summary="Create or update an entry",
)
def put_entry(body: SetEntryRequest):
    """Set an entry; an identical value is a no-op reported as changed=false."""
    config = _get_config()
    target = _resolve(config, body.path)
    try:
        kind = ValueKind.parse(body.kind)
        changed = set_entry(
            target,
            body.key,
            body.value_name,
            _request_data(kind, body.data),
            kind,
            update_gpt_ini=_gpt_ini_update(config, target, body.update_gpt_ini),
            config=config,
        )
    except (ValidationError, FormatError, OSError) as e:
        raise _http_error(e) from e
    return ChangeResponse(changed=changed)


@router.delete(
    "/entries",
    response_model=ChangeResponse,
    summary="Delete an entry",
)
def delete_entry(body: RemoveEntryRequest):
    """Remove an entry; an absent entry is a no-op reported as changed=false."""
    config = _get_config()
    target = _resolve(config, body.path)
    try:
        changed = remove_entry(
            target,
            body.key,
            body.value_name,
            update_gpt_ini=_gpt_ini_update(config, target, body.update_gpt_ini),
            config=config,
        )
    except (ValidationError, FormatError, OSError) as e:
        raise _http_error(e) from e
    return ChangeResponse(changed=changed)


# ---------------------------------------------------------------------------
# gpt.ini endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/gpt-ini/version",
    response_model=VersionResponse,
    summary="Increment gpt.ini version counters",
)
def bump_version(body: VersionBumpRequest):
    """Increment the Machine and/or User counters of an existing gpt.ini."""
    target = _resolve(_get_config(), body.path)
    try:
        version = update_gpt_ini_version(target, body.scopes)
    except (ValidationError, FormatError, OSError) as e:
        raise _http_error(e) from e
    machine, user = decode_version(version)
    return VersionResponse(version=version, machine=machine, user=user)

"""Validate that entity stores satisfy osmtopo's structural expectations."""

from __future__ import annotations

import logging as lg
from typing import TYPE_CHECKING
from warnings import warn

from ._errors import ValidationError
from .utils import log

if TYPE_CHECKING:
    from .store import EntityStore


def _validate_ways(store: EntityStore) -> tuple[bool, str, str]:
    """
    Validate that every stored way's node references resolve.

    Parameters
    ----------
    store
        The entity store.

    Returns
    -------
    is_valid, err_msg, warn_msg
    """
    is_valid = True
    err_msg = ""
    warn_msg = ""

    dangling = {
        way.id: node_id
        for way in store.ways.values()
        for node_id in way.nodes
        if not store.has_node(node_id)
    }
    if len(dangling) > 0:
        examples = ", ".join(f"way {w} -> node {n}" for w, n in list(dangling.items())[:5])
        err_msg += f"{len(dangling):,} ways reference missing nodes ({examples}). "
        is_valid = False

    if len(store.empty_way_ids) > 0:
        warn_msg += f"{len(store.empty_way_ids):,} ways with no nodes were skipped. "

    if len(store.duplicate_ways) > 0:
        warn_msg += f"{len(store.duplicate_ways):,} ways have duplicate IDs. "

    return is_valid, err_msg, warn_msg


def _validate_relations(store: EntityStore) -> tuple[bool, str, str]:
    """
    Validate that relations' member ways are present in the store.

    Missing member ways are common in extracts clipped to a bounding box, so
    they only produce a warning.

    Parameters
    ----------
    store
        The entity store.

    Returns
    -------
    is_valid, err_msg, warn_msg
    """
    missing = sum(
        1 for rel in store.relations for way_id, _ in rel.ways if not store.has_way(way_id)
    )
    warn_msg = f"{missing:,} relation member ways are missing from the store. " if missing else ""
    return True, "", warn_msg


def validate_store(store: EntityStore, *, strict: bool = True) -> None:
    """
    Validate that an entity store's references are internally consistent.

    Raises a `ValidationError` if any way references a node absent from the
    node store. Empty ways, duplicate way IDs, and missing relation member
    ways produce warnings, elevated to errors if `strict`.

    Parameters
    ----------
    store
        The entity store.
    strict
        If `True`, elevate warnings to errors.

    Returns
    -------
    None
    """
    is_valid_ways, err_msg_ways, warn_msg_ways = _validate_ways(store)
    is_valid_rels, err_msg_rels, warn_msg_rels = _validate_relations(store)

    is_valid = is_valid_ways and is_valid_rels
    err_msg = err_msg_ways + err_msg_rels
    warn_msg = warn_msg_ways + warn_msg_rels
    if strict and warn_msg != "":
        is_valid = False
    valid_msg = "Validated entity store."
    _report_validation(is_valid, valid_msg, warn_msg, err_msg)


def _report_validation(is_valid: bool, valid_msg: str, warn_msg: str, err_msg: str) -> None:  # noqa: FBT001
    """
    Report validation results by logging, warning, or raising an exception.

    Parameters
    ----------
    is_valid
        Whether or not the validation succeeded.
    valid_msg
        The message to log if validation succeeded.
    warn_msg
        Any warning messages to log and either issue a warning or include in
        error message.
    err_msg
        Any error messages to include when raising exception if validation
        failed.
    """
    if is_valid:
        log(valid_msg, level=lg.INFO)
        if warn_msg != "":
            log(warn_msg, level=lg.WARNING)
            warn(warn_msg, category=UserWarning, stacklevel=2)
    else:
        log(err_msg + warn_msg, level=lg.ERROR)
        raise ValidationError(err_msg + warn_msg)

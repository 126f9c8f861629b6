"""Branch resolution and creation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ._trace import trace
from .exceptions import BranchNotFoundError, NotFoundError
from .objects import Reference, branch_ref

if TYPE_CHECKING:
    from .gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


def _validate_ref_name(name: str) -> None:
    """Reject ref names containing ':', space, tab, or newline."""
    if not name:
        raise ValueError("Branch name must not be empty")
    for ch, label in ((":", "colon"), (" ", "space"), ("\t", "tab"), ("\n", "newline")):
        if ch in name:
            raise ValueError(f"Invalid ref name {name!r}: contains {label}")


async def get_branch_or_none(gateway: ObjectStoreGateway, branch: str) -> Reference | None:
    """Return the reference for *branch*, or None if it does not exist.

    Every failure other than "not found" propagates.
    """
    try:
        return await gateway.get_reference(branch_ref(branch))
    except NotFoundError:
        return None


async def resolve_branch(
    gateway: ObjectStoreGateway,
    branch: str,
    *,
    base_branch: str,
    create: bool = False,
    log: logging.Logger | None = None,
) -> tuple[Reference, bool]:
    """Return ``(reference, created)`` for *branch*.

    A missing branch is created from *base_branch*'s current commit when
    *create* is set; otherwise :class:`BranchNotFoundError` is raised
    before anything is written.
    """
    log = log or logger
    ref = await get_branch_or_none(gateway, branch)
    if ref is not None:
        trace(log, "branch_resolved", branch=branch, sha=ref.sha)
        return ref, False

    if not create:
        raise BranchNotFoundError(
            f"Branch not found: {branch} (pass create_branch to create it from {base_branch})"
        )

    base = await get_branch_or_none(gateway, base_branch)
    if base is None:
        raise BranchNotFoundError(f"Base branch not found: {base_branch}")
    ref = await gateway.create_reference(branch_ref(branch), base.sha)
    trace(log, "branch_created", logging.INFO, branch=branch, base=base_branch, sha=ref.sha)
    return ref, True

"""Shared spawn and process-tree termination primitives.

Both the executor and the supervisor spawn children in a new session and
terminate them as a tree: DICOM server binaries may fork helpers, and a
single signal to the direct child would leak those grandchildren.
"""

import os
import subprocess
from collections.abc import Mapping
from typing import Any

import psutil

from dcmproc.constants import IS_WINDOWS


def build_env(
    overlay: Mapping[str, str],
    *,
    replace: bool = False,
) -> dict[str, str] | None:
    """Build the child environment.

    Args:
        overlay: Variables to set for the child.
        replace: Use ``overlay`` as the whole environment instead of merging
            it over ``os.environ``.

    Returns:
        The environment mapping, or None to inherit the parent's unchanged.
    """
    if replace:
        return dict(overlay)
    if not overlay:
        return None
    return {**os.environ, **overlay}


def spawn_kwargs() -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Build platform-specific isolation kwargs for process creation.

    POSIX children get their own session so terminal signals aimed at the
    parent do not reach them; Windows children get their own process group.
    """
    if IS_WINDOWS:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def terminate_tree(pid: int, *, force: bool = False) -> int:
    """Signal a process and all of its descendants.

    Descendants are collected recursively before any signal is sent so that
    children re-parented by a dying parent are still reached. Processes that
    are already gone are skipped.

    Args:
        pid: Root of the tree.
        force: Send SIGKILL instead of SIGTERM.

    Returns:
        The number of processes that were signalled.
    """
    try:
        root = psutil.Process(pid)
    except psutil.Error:
        return 0

    try:
        children = root.children(recursive=True)
    except psutil.Error:
        children = []

    signalled = 0
    for proc in [*children, root]:
        try:
            if force:
                proc.kill()
            else:
                proc.terminate()
        except psutil.Error:
            continue
        signalled += 1

    return signalled

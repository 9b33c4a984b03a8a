# Routes package init
"""
Volunteer API — Handler Groups
===============================

What:  The ten handler groups, their mount prefixes and mount order, and the
       startup check that no two groups can claim the same request.
Why:   Several groups share the bare `/api` prefix. With first-match
       dispatch, a parameterized route in an early group could silently
       shadow a literal route in a later one; the check turns that into a
       startup failure (RouteConflictError) instead.

Mount order (also the dispatch order):
    auth           /api/auth
    user           /api/user
    faculty        /api/faculty
    file           /api              /files
    category       /api/category
    activity       /api              /activities
    profile        /api/profile
    plan_activity  /api              /plan-activities
    notifications  /api/notifications
    contact        /api              /contact

Overlap rule:
    Two routes overlap when they share a method (WebSocket routes use "WS")
    and their full paths match segment by segment, where a `{param}` segment
    matches any one segment and a `{param:path}` segment matches the rest.
"""

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, List, Sequence, Set, Tuple

from fastapi import APIRouter, FastAPI
from fastapi.routing import APIRoute, APIWebSocketRoute

from volunteer_api.exceptions import RouteConflictError
from volunteer_api.routes import (
    activity,
    auth,
    category,
    contact,
    faculty,
    files,
    notifications,
    plan_activity,
    profile,
    user,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerGroup:
    name: str
    prefix: str
    router: APIRouter

    def signatures(self) -> List[Tuple[Set[str], str]]:
        """(methods, full path) for every route in the group."""
        result = []
        for route in self.router.routes:
            if isinstance(route, APIWebSocketRoute):
                methods = {"WS"}
            elif isinstance(route, APIRoute):
                methods = set(route.methods)
            else:
                continue
            result.append((methods, self.prefix + route.path))
        return result


HANDLER_GROUPS: Sequence[HandlerGroup] = (
    HandlerGroup("auth", "/api/auth", auth.router),
    HandlerGroup("user", "/api/user", user.router),
    HandlerGroup("faculty", "/api/faculty", faculty.router),
    HandlerGroup("file", "/api", files.router),
    HandlerGroup("category", "/api/category", category.router),
    HandlerGroup("activity", "/api", activity.router),
    HandlerGroup("profile", "/api/profile", profile.router),
    HandlerGroup("plan_activity", "/api", plan_activity.router),
    HandlerGroup("notifications", "/api/notifications", notifications.router),
    HandlerGroup("contact", "/api", contact.router),
)


def _is_param(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def _is_catch_all(segment: str) -> bool:
    return _is_param(segment) and segment.endswith(":path}")


def paths_overlap(first: str, second: str) -> bool:
    """True when some concrete path would match both templates."""
    left = [s for s in first.split("/") if s]
    right = [s for s in second.split("/") if s]
    for a, b in zip(left, right):
        if _is_catch_all(a) or _is_catch_all(b):
            return True
        if _is_param(a) or _is_param(b):
            continue
        if a != b:
            return False
    return len(left) == len(right)


def find_route_conflicts(groups: Iterable[HandlerGroup]) -> List[str]:
    conflicts = []
    for first, second in combinations(list(groups), 2):
        for methods_a, path_a in first.signatures():
            for methods_b, path_b in second.signatures():
                shared = methods_a & methods_b
                if shared and paths_overlap(path_a, path_b):
                    conflicts.append(
                        f"{','.join(sorted(shared))} {path_a} ({first.name}) "
                        f"overlaps {path_b} ({second.name})"
                    )
    return conflicts


def mount_handler_groups(app: FastAPI, groups: Sequence[HandlerGroup] = HANDLER_GROUPS) -> None:
    """Verifies the groups are disjoint, then mounts them in order."""
    conflicts = find_route_conflicts(groups)
    if conflicts:
        raise RouteConflictError(conflicts)
    for group in groups:
        app.include_router(group.router, prefix=group.prefix, tags=[group.name])
        logger.debug("Mounted handler group %s at %s", group.name, group.prefix)

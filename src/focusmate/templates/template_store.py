# src/focusmate/templates/template_store.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from ..core.clock import now_ms
from ..core.errors import TemplateNotFoundError
from ..core.ports import Clock, KeyValueBackend
from ..storage.keyed_store import CacheRecord, KeyedStore, drop_oldest
from .catalog import (
    PRELOADED_TEMPLATES,
    Category,
    Difficulty,
    Template,
    TemplateStep,
    get_template_by_id,
)

logger = logging.getLogger(__name__)

CUSTOM_TEMPLATES_STORAGE_KEY = "focusmate_custom_templates"
QUOTA_PRUNE_COUNT = 5


@dataclass(frozen=True, slots=True)
class CustomTemplate:
    id: str
    title: str
    category: Category
    difficulty: Difficulty
    estimated_total_minutes: int
    description: str
    steps: tuple[TemplateStep, ...]
    tips: tuple[str, ...] = ()
    accessibility_notes: str | None = None
    original_id: str | None = None
    created_at_ms: int = 0
    updated_at_ms: int = 0
    use_count: int = 0
    is_favorite: bool = False

    def matches(self, query: str) -> bool:
        q = (query or "").lower()
        return (
            q in self.title.lower()
            or q in self.description.lower()
            or any(q in s.description.lower() for s in self.steps)
        )


@dataclass(frozen=True, slots=True)
class TemplateStats:
    total_preloaded: int
    total_custom: int
    total_favorites: int
    total_usage: int


@dataclass(frozen=True, slots=True)
class _TemplateBody:
    title: str
    category: Category
    difficulty: Difficulty
    estimated_total_minutes: int
    description: str
    steps: tuple[TemplateStep, ...]
    tips: tuple[str, ...] = ()
    accessibility_notes: str | None = None
    original_id: str | None = None
    updated_at_ms: int = 0
    is_favorite: bool = False


def _encode(body: _TemplateBody) -> dict[str, Any]:
    return {
        "title": body.title,
        "category": str(body.category),
        "difficulty": str(body.difficulty),
        "estimated_total_minutes": body.estimated_total_minutes,
        "description": body.description,
        "steps": [
            {
                "id": s.id,
                "description": s.description,
                "estimated_minutes": s.estimated_minutes,
                "optional": s.optional,
            }
            for s in body.steps
        ],
        "tips": list(body.tips),
        "accessibility_notes": body.accessibility_notes,
        "original_id": body.original_id,
        "updated_at_ms": body.updated_at_ms,
        "is_favorite": body.is_favorite,
    }


def _decode(raw: Any) -> _TemplateBody:
    return _TemplateBody(
        title=str(raw["title"]),
        category=Category(raw["category"]),
        difficulty=Difficulty(raw["difficulty"]),
        estimated_total_minutes=int(raw.get("estimated_total_minutes", 0)),
        description=str(raw.get("description", "")),
        steps=tuple(
            TemplateStep(
                id=str(s["id"]),
                description=str(s["description"]),
                estimated_minutes=int(s.get("estimated_minutes", 0)),
                optional=bool(s.get("optional", False)),
            )
            for s in raw.get("steps", [])
        ),
        tips=tuple(str(t) for t in raw.get("tips", [])),
        accessibility_notes=raw.get("accessibility_notes"),
        original_id=raw.get("original_id"),
        updated_at_ms=int(raw.get("updated_at_ms", 0)),
        is_favorite=bool(raw.get("is_favorite", False)),
    )


def _to_template(rec: CacheRecord[_TemplateBody]) -> CustomTemplate:
    body = rec.payload
    return CustomTemplate(
        id=rec.key,
        title=body.title,
        category=body.category,
        difficulty=body.difficulty,
        estimated_total_minutes=body.estimated_total_minutes,
        description=body.description,
        steps=body.steps,
        tips=body.tips,
        accessibility_notes=body.accessibility_notes,
        original_id=body.original_id,
        created_at_ms=rec.created_at_ms,
        updated_at_ms=body.updated_at_ms or rec.created_at_ms,
        # The record counts the initial save as one use.
        use_count=rec.use_count - 1,
        is_favorite=body.is_favorite,
    )


def _total_minutes(steps: tuple[TemplateStep, ...]) -> int:
    return sum(s.estimated_minutes for s in steps)


class TemplateStore:
    """
    Preloaded catalog + user-owned custom templates.

    Custom templates are persisted through a KeyedStore keyed by generated id;
    the catalog is read-only. On a storage quota failure the least recently
    updated custom templates are dropped first.
    """

    def __init__(self, backend: KeyValueBackend | None, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._store: KeyedStore[_TemplateBody] = KeyedStore(
            CUSTOM_TEMPLATES_STORAGE_KEY,
            backend=backend,
            encode=_encode,
            decode=_decode,
            clock=clock,
            victims=drop_oldest(
                QUOTA_PRUNE_COUNT,
                by=lambda r: r.payload.updated_at_ms or r.created_at_ms,
            ),
        )

    def _generate_id(self) -> str:
        return f"custom_{self._clock()}_{uuid.uuid4().hex[:9]}"

    def _mutate(
        self,
        template_id: str,
        change: Callable[[_TemplateBody], _TemplateBody | None],
    ) -> CustomTemplate | None:
        """Apply change() to a custom template's body; None from change() aborts without writing."""
        rec = self._store.get(template_id)
        if rec is None:
            return None
        body = change(rec.payload)
        if body is None:
            return None
        updated = self._store.update(template_id, replace(body, updated_at_ms=self._clock()))
        return _to_template(updated) if updated is not None else None

    # ---- queries ----

    def preloaded(self) -> list[Template]:
        return list(PRELOADED_TEMPLATES)

    def custom_templates(self) -> list[CustomTemplate]:
        """Custom templates, most recently updated first."""
        items = [_to_template(r) for r in self._store.records()]
        items.sort(key=lambda t: t.updated_at_ms, reverse=True)
        return items

    def list_all(self) -> list[Template | CustomTemplate]:
        custom = [_to_template(r) for r in self._store.records()]
        return [*PRELOADED_TEMPLATES, *custom]

    def get(self, template_id: str) -> Template | CustomTemplate | None:
        preloaded = get_template_by_id(template_id)
        if preloaded is not None:
            return preloaded
        rec = self._store.get(template_id)
        return _to_template(rec) if rec is not None else None

    def favorites(self) -> list[CustomTemplate]:
        return [t for t in self.custom_templates() if t.is_favorite]

    def search(self, query: str) -> list[Template | CustomTemplate]:
        return [t for t in self.list_all() if t.matches(query)]

    def recently_used(self, limit: int = 10) -> list[CustomTemplate]:
        items = sorted(self.custom_templates(), key=lambda t: t.use_count, reverse=True)
        return items[: max(0, int(limit))]

    def stats(self) -> TemplateStats:
        custom = self.custom_templates()
        return TemplateStats(
            total_preloaded=len(PRELOADED_TEMPLATES),
            total_custom=len(custom),
            total_favorites=sum(1 for t in custom if t.is_favorite),
            total_usage=sum(t.use_count for t in custom),
        )

    # ---- custom template lifecycle ----

    def clone(self, preloaded_id: str, new_title: str | None = None) -> CustomTemplate:
        source = get_template_by_id(preloaded_id)
        if source is None:
            raise TemplateNotFoundError(preloaded_id)

        body = _TemplateBody(
            title=new_title or source.title,
            category=source.category,
            difficulty=source.difficulty,
            estimated_total_minutes=source.estimated_total_minutes,
            description=source.description,
            steps=tuple(
                replace(step, id=f"step_{idx}") for idx, step in enumerate(source.steps)
            ),
            tips=source.tips,
            accessibility_notes=source.accessibility_notes,
            original_id=source.id,
            updated_at_ms=self._clock(),
        )
        rec = self._store.set(self._generate_id(), body)
        logger.info("Cloned template %r -> %r (%s)", source.title, body.title, rec.key)
        return _to_template(rec)

    def save_custom(self, template: CustomTemplate) -> CustomTemplate:
        """Insert or update a custom template; an empty id gets a generated one."""
        body = _TemplateBody(
            title=template.title,
            category=Category(template.category),
            difficulty=Difficulty(template.difficulty),
            estimated_total_minutes=template.estimated_total_minutes,
            description=template.description,
            steps=tuple(template.steps),
            tips=tuple(template.tips),
            accessibility_notes=template.accessibility_notes,
            original_id=template.original_id,
            updated_at_ms=self._clock(),
            is_favorite=template.is_favorite,
        )

        if template.id and self._store.get(template.id) is not None:
            rec = self._store.update(template.id, body)
        else:
            rec = self._store.set(template.id or self._generate_id(), body)
        assert rec is not None

        logger.info("Saved custom template: %r (%s)", body.title, rec.key)
        return _to_template(rec)

    def delete(self, template_id: str) -> bool:
        deleted = self._store.delete(template_id)
        if deleted:
            logger.info("Deleted custom template: %s", template_id)
        return deleted

    def toggle_favorite(self, template_id: str) -> bool:
        """Flip is_favorite; returns the new state (False when the template is unknown)."""
        updated = self._mutate(template_id, lambda b: replace(b, is_favorite=not b.is_favorite))
        return updated.is_favorite if updated is not None else False

    def record_usage(self, template_id: str) -> bool:
        """Count one use of a custom template. Catalog templates are not tracked."""
        return self._store.touch(template_id) is not None

    # ---- step editing ----

    def update_step(
        self,
        template_id: str,
        step_id: str,
        *,
        description: str | None = None,
        estimated_minutes: int | None = None,
        optional: bool | None = None,
    ) -> bool:
        def change(body: _TemplateBody) -> _TemplateBody | None:
            if not any(s.id == step_id for s in body.steps):
                return None
            steps = tuple(
                replace(
                    s,
                    description=s.description if description is None else description,
                    estimated_minutes=s.estimated_minutes if estimated_minutes is None else max(0, int(estimated_minutes)),
                    optional=s.optional if optional is None else bool(optional),
                )
                if s.id == step_id
                else s
                for s in body.steps
            )
            return replace(body, steps=steps, estimated_total_minutes=_total_minutes(steps))

        return self._mutate(template_id, change) is not None

    def add_step(
        self,
        template_id: str,
        description: str,
        estimated_minutes: int,
        optional: bool = False,
    ) -> str:
        rec = self._store.get(template_id)
        if rec is None:
            raise TemplateNotFoundError(template_id)

        step_id = f"step_{len(rec.payload.steps)}_{self._clock()}"
        new_step = TemplateStep(
            id=step_id,
            description=description,
            estimated_minutes=max(0, int(estimated_minutes)),
            optional=bool(optional),
        )

        def change(body: _TemplateBody) -> _TemplateBody:
            steps = (*body.steps, new_step)
            return replace(body, steps=steps, estimated_total_minutes=_total_minutes(steps))

        self._mutate(template_id, change)
        return step_id

    def remove_step(self, template_id: str, step_id: str) -> bool:
        def change(body: _TemplateBody) -> _TemplateBody | None:
            steps = tuple(s for s in body.steps if s.id != step_id)
            if len(steps) == len(body.steps):
                return None
            return replace(body, steps=steps, estimated_total_minutes=_total_minutes(steps))

        return self._mutate(template_id, change) is not None

    def reorder_steps(self, template_id: str, from_index: int, to_index: int) -> bool:
        def change(body: _TemplateBody) -> _TemplateBody | None:
            n = len(body.steps)
            if not (0 <= from_index < n and 0 <= to_index < n):
                return None
            steps = list(body.steps)
            moved = steps.pop(from_index)
            steps.insert(to_index, moved)
            return replace(body, steps=tuple(steps))

        return self._mutate(template_id, change) is not None

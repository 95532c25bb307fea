"""Pending forms repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete

from tube_relay.engine.models.form import FormKind, PendingForm

if TYPE_CHECKING:
    from tube_relay.datastore.client import Datastore


class FormRepository:
    """Data access layer for form input awaiting a callback."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def save(
        self,
        form_id: str,
        kind: FormKind,
        data: dict[str, Any],
        *,
        created_at: int,
    ) -> PendingForm:
        """Store form input under *form_id*."""
        form = PendingForm(id=form_id, kind=kind.value, form_data=data, created_at=created_at)
        async with self._ds.session("save form") as session:
            session.add(form)
            await session.commit()
            await session.refresh(form)
        return form

    async def get(self, form_id: str, kind: FormKind) -> PendingForm | None:
        """Fetch a pending form of the given kind."""
        async with self._ds.session("get form") as session:
            form = await session.get(PendingForm, form_id)
        if form is None or form.kind != kind.value:
            return None
        return form

    async def delete(self, form_id: str) -> bool:
        """Delete a consumed form. Returns True if it existed."""
        async with self._ds.session("delete form") as session:
            result = await session.execute(delete(PendingForm).where(PendingForm.id == form_id))
            await session.commit()
            return (result.rowcount or 0) > 0  # type: ignore[union-attr]

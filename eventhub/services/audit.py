"""Change log for every tracked entity, captured from SQLAlchemy mapper events.

Business code never writes audit rows itself. At startup the application
builds an explicit :class:`EntityRegistry` (see
``eventhub.models.build_entity_registry``) and hands it to
:meth:`AuditInterceptor.attach`, which installs three listeners per entity:

* ``after_insert``  -> ``CREATE`` with the new snapshot (the id is known now).
* ``before_update`` -> ``UPDATE`` with the *persisted* row as the old snapshot,
  read fresh on the flush connection because the in-memory object has already
  been mutated.
* ``before_delete`` -> ``DELETE`` with the last snapshot.

Audit rows are written on the same connection as the change they describe.
Writing them is best-effort: a failed audit insert is logged loudly and the
primary mutation carries on.

An UPDATE whose row was deleted by another transaction is rejected by the
ORM (``StaleDataError``) and its flush rolls back, taking the in-flush audit
row with it. Such entries are parked on ``Session.info`` and written again in
their own transaction once the rollback has happened, so the attempted change
stays on record with ``old_value = None``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from typing import Any, Iterable, Iterator

from fastapi.encoders import jsonable_encoder
from sqlalchemy import and_, event, insert, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper, Session, object_session

from ..db.session import utcnow_iso
from ..models.audit import AuditAction, AuditLogEntry

logger = logging.getLogger(__name__)

# The log itself, account churn (credentials) and team-assignment joins.
DEFAULT_EXCLUSIONS = frozenset({"AuditLogEntry", "User", "EventParticipant"})
SENSITIVE_FIELDS = frozenset({"password", "password_hash"})
ACTOR_KEY = "actor_user_id"
# Session.info slot for UPDATE entries whose target row had already vanished.
PENDING_KEY = "audit_pending_updates"

_HOOKS = ("after_insert", "before_update", "before_delete")


class EntityRegistry:
    """Named entity types that are candidates for auditing."""

    def __init__(self) -> None:
        self._models: dict[str, type] = {}

    def register(self, name: str, model: type) -> None:
        existing = self._models.get(name)
        if existing is not None and existing is not model:
            raise ValueError(f"entity name {name!r} is already registered for {existing.__name__}")
        self._models[name] = model

    def names(self) -> list[str]:
        return list(self._models)

    def items(self) -> Iterable[tuple[str, type]]:
        return self._models.items()

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)


audit_registry = EntityRegistry()


def register_audited_entity(name: str, model: type, registry: EntityRegistry | None = None) -> None:
    (registry if registry is not None else audit_registry).register(name, model)


# ---------- snapshots ----------


def _clean(values: dict[str, Any] | None) -> dict[str, Any] | None:
    if values is None:
        return None
    data = jsonable_encoder(values)
    for key in SENSITIVE_FIELDS:
        data.pop(key, None)
    return data


def sanitize(instance: Any) -> dict[str, Any] | None:
    """Plain JSON snapshot of an entity's columns with credentials removed."""

    if instance is None:
        return None
    mapper = sa_inspect(instance).mapper
    return _clean({prop.key: getattr(instance, prop.key) for prop in mapper.column_attrs})


def _loaded_values(mapper: Mapper, target: Any) -> dict[str, Any]:
    """Column values present on the instance, without triggering any loads."""

    state_dict = sa_inspect(target).dict
    return {prop.key: state_dict[prop.key] for prop in mapper.column_attrs if prop.key in state_dict}


def _identity(mapper: Mapper, target: Any) -> tuple[Any, ...] | None:
    state = sa_inspect(target)
    if state.identity is not None:
        return tuple(state.identity)
    values = mapper.primary_key_from_instance(target)
    return None if any(v is None for v in values) else tuple(values)


def _record_id(mapper: Mapper, target: Any) -> str:
    identity = _identity(mapper, target) or ()
    return ":".join(str(part) for part in identity)


def _load_persisted(connection: Connection, mapper: Mapper, target: Any) -> dict[str, Any] | None:
    """Read the committed-so-far row for ``target`` straight from the database."""

    identity = _identity(mapper, target)
    if identity is None:
        return None
    stmt = select(mapper.local_table).where(
        and_(*[column == value for column, value in zip(mapper.primary_key, identity)])
    )
    row = connection.execute(stmt).mappings().first()
    if row is None:
        return None
    return {prop.key: row[prop.columns[0]] for prop in mapper.column_attrs}


def _savepoint(connection: Connection):
    # pysqlite cannot nest SAVEPOINTs reliably; a failed statement there only
    # rolls back itself, so the surrounding flush survives without one.
    if connection.dialect.name == "sqlite":
        return nullcontext()
    return connection.begin_nested()


def _actor_for(target: Any) -> int | None:
    session = object_session(target)
    if session is None:
        return None
    return session.info.get(ACTOR_KEY)


@contextmanager
def acting_as(db: Session, user_id: int | None) -> Iterator[Session]:
    """Attribute every audited change made through ``db`` to ``user_id``."""

    previous = db.info.get(ACTOR_KEY)
    db.info[ACTOR_KEY] = user_id
    try:
        yield db
    finally:
        if previous is None:
            db.info.pop(ACTOR_KEY, None)
        else:
            db.info[ACTOR_KEY] = previous


# ---------- interceptor ----------


def _insert_entry(connection: Connection, values: dict[str, Any]) -> None:
    connection.execute(insert(AuditLogEntry.__table__).values(**values))


class AuditInterceptor:
    """Installs and removes the audit listeners for a set of entities.

    Reading the log back is a repository concern; :meth:`query` delegates to
    ``eventhub.crud.audit.query_audit_log``.
    """

    def __init__(self) -> None:
        self._tracked: dict[type, str] = {}
        self.exclusions: frozenset[str] = DEFAULT_EXCLUSIONS

    @property
    def tracked_entities(self) -> list[str]:
        return sorted(self._tracked.values())

    def is_tracked(self, name: str) -> bool:
        return name in self._tracked.values()

    def attach(self, registry: EntityRegistry, exclusions: Iterable[str] = DEFAULT_EXCLUSIONS) -> list[str]:
        """Install listeners for every registered, non-excluded entity.

        Calling this again only installs listeners for entities that are not
        tracked yet. Returns the names that were newly attached.
        """

        self.exclusions = frozenset(exclusions) | frozenset({AuditLogEntry.__name__})
        attached: list[str] = []
        for name, model in registry.items():
            if name in self.exclusions or model in self._tracked:
                continue
            event.listen(model, "after_insert", self._after_insert)
            event.listen(model, "before_update", self._before_update)
            event.listen(model, "before_delete", self._before_delete)
            self._tracked[model] = name
            attached.append(name)
        if self._tracked:
            for hook, fn in self._session_hooks():
                if not event.contains(Session, hook, fn):
                    event.listen(Session, hook, fn)
        if attached:
            logger.info("audit.attached", extra={"extra_data": {"entities": attached}})
        return attached

    def detach(self) -> None:
        for model in list(self._tracked):
            for hook, fn in zip(_HOOKS, (self._after_insert, self._before_update, self._before_delete)):
                if event.contains(model, hook, fn):
                    event.remove(model, hook, fn)
            del self._tracked[model]
        for hook, fn in self._session_hooks():
            if event.contains(Session, hook, fn):
                event.remove(Session, hook, fn)

    def query(self, db: Session, filters: dict[str, Any] | None = None, limit: int = 50, page: int = 1):
        from ..crud.audit import query_audit_log

        return query_audit_log(db, filters, limit=limit, page=page)

    def _session_hooks(self):
        return (("after_rollback", self._replay_pending), ("after_commit", self._drop_pending))

    # -- listeners; signature fixed by SQLAlchemy: (mapper, connection, target)

    def _after_insert(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        self._write(
            connection,
            mapper,
            target,
            AuditAction.CREATE,
            old_value=None,
            new_value=_clean(_loaded_values(mapper, target)),
        )

    def _before_update(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        session = object_session(target)
        if session is not None and not session.is_modified(target, include_collections=False):
            return
        previous: dict[str, Any] | None = None
        vanished = False
        try:
            with _savepoint(connection):
                previous = _load_persisted(connection, mapper, target)
            vanished = previous is None
        except Exception:
            logger.warning("audit.preimage_failed", exc_info=True, extra=self._context(mapper, target))
            previous = None
        current = dict(previous or {})
        current.update(_loaded_values(mapper, target))
        values = self._write(
            connection,
            mapper,
            target,
            AuditAction.UPDATE,
            old_value=_clean(previous),
            new_value=_clean(current),
        )
        if vanished and session is not None:
            # The UPDATE itself will match no row and the flush will roll back.
            session.info.setdefault(PENDING_KEY, []).append((connection.engine, values))

    def _before_delete(self, mapper: Mapper, connection: Connection, target: Any) -> None:
        values = _loaded_values(mapper, target)
        if len(values) < len(mapper.column_attrs):
            # Expired after an earlier commit; fall back to the stored row.
            try:
                with _savepoint(connection):
                    persisted = _load_persisted(connection, mapper, target)
            except Exception:
                logger.warning("audit.preimage_failed", exc_info=True, extra=self._context(mapper, target))
                persisted = None
            values = {**(persisted or {}), **values}
        self._write(
            connection,
            mapper,
            target,
            AuditAction.DELETE,
            old_value=_clean(values),
            new_value=None,
        )

    # -- session listeners

    def _replay_pending(self, session: Session) -> None:
        for engine, values in session.info.pop(PENDING_KEY, None) or ():
            try:
                with engine.begin() as connection:
                    _insert_entry(connection, values)
            except Exception:
                logger.exception("audit.write_failed", extra={"extra_data": self._summary(values)})
            else:
                logger.warning("audit.update_on_vanished_row", extra={"extra_data": self._summary(values)})

    def _drop_pending(self, session: Session) -> None:
        session.info.pop(PENDING_KEY, None)

    # -- helpers

    def _context(self, mapper: Mapper, target: Any) -> dict[str, Any]:
        entity_type = self._tracked.get(mapper.class_, mapper.class_.__name__)
        return {"extra_data": {"entity_type": entity_type, "record_id": _record_id(mapper, target)}}

    @staticmethod
    def _summary(values: dict[str, Any]) -> dict[str, Any]:
        return {
            "entity_type": values["entity_type"],
            "record_id": values["record_id"],
            "action": values["action"].value,
        }

    def _write(
        self,
        connection: Connection,
        mapper: Mapper,
        target: Any,
        action: AuditAction,
        *,
        old_value: dict[str, Any] | None,
        new_value: dict[str, Any] | None,
    ) -> dict[str, Any]:
        values = {
            "entity_type": self._tracked.get(mapper.class_, mapper.class_.__name__),
            "record_id": _record_id(mapper, target),
            "action": action,
            "old_value": old_value,
            "new_value": new_value,
            "actor_user_id": _actor_for(target),
            "created_at": utcnow_iso(),
        }
        try:
            with _savepoint(connection):
                _insert_entry(connection, values)
        except Exception:
            logger.exception("audit.write_failed", extra={"extra_data": self._summary(values)})
        return values


audit_interceptor = AuditInterceptor()


def attach_audit_hooks(
    registry: EntityRegistry | None = None,
    exclusions: Iterable[str] = DEFAULT_EXCLUSIONS,
) -> AuditInterceptor:
    """Attach the process-wide interceptor; safe to call more than once."""

    if registry is None:
        from ..models import build_entity_registry

        registry = build_entity_registry()
    audit_interceptor.attach(registry, exclusions)
    return audit_interceptor

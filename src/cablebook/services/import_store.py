"""
SQLAlchemy stores for the spreadsheet import engine.

SqlAlchemyUpsertStore and SqlAlchemyChildSetStore implement the store
protocols of upsert_reconciler_service and child_set_service against the
ORM models.

Session handling follows the service-layer convention: when a session is
passed in, the import runs inside a SAVEPOINT on that session so it can be
rolled back on its own; otherwise each transaction gets its own
session_scope().

Record identifiers exposed to the engine are model UUIDs; reference ids
are the integer primary keys stored in foreign key columns.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Set, Type

from sqlalchemy import Date
from sqlalchemy.orm import Session

from cablebook.models import (
    Cable,
    CableType,
    MaterialLoadCurve,
    MaterialLoadCurvePoint,
    MaterialSupport,
    MaterialTray,
    Project,
    Tray,
)
from cablebook.models.base import BaseModel
from cablebook.services.child_set_service import ChildItem
from cablebook.services.database import session_scope
from cablebook.services.exceptions import ParentNotFound
from cablebook.services.import_profiles import ImportProfile
from cablebook.services.upsert_reconciler_service import ExistingRecord, PersistRequest
from cablebook.utils.datetime_utils import utc_now


@dataclass(frozen=True)
class ModelBinding:
    """
    Maps an import profile onto its model.

    Attributes:
        model: Model class receiving the rows
        key_attr: Column holding the natural key display value
        match_attr: Column holding the normalized natural key
        scope_attr: Column holding the parent scope, None for global catalogs
        scope_model: Model owning the parent scope, None for global catalogs
        scope_label: Parent kind reported when the scope row is missing
        reference_model: Model named by the reference column, if any
        reference_match_attr: Normalized name column of the reference model
        reference_scope_attr: Scope column of the reference model, if scoped
    """

    model: Type[BaseModel]
    key_attr: str
    match_attr: str
    scope_attr: Optional[str] = None
    scope_model: Optional[Type[BaseModel]] = None
    scope_label: str = "project"
    reference_model: Optional[Type[BaseModel]] = None
    reference_match_attr: str = "name_key"
    reference_scope_attr: Optional[str] = None


MODEL_BINDINGS: Dict[str, ModelBinding] = {
    "cable": ModelBinding(
        model=Cable,
        key_attr="cable_id",
        match_attr="cable_id_key",
        scope_attr="project_id",
        scope_model=Project,
        reference_model=CableType,
        reference_scope_attr="project_id",
    ),
    "cable_type": ModelBinding(
        model=CableType,
        key_attr="name",
        match_attr="name_key",
        scope_attr="project_id",
        scope_model=Project,
    ),
    "tray": ModelBinding(
        model=Tray,
        key_attr="name",
        match_attr="name_key",
        scope_attr="project_id",
        scope_model=Project,
    ),
    "material_tray": ModelBinding(
        model=MaterialTray,
        key_attr="tray_type",
        match_attr="tray_type_key",
        reference_model=MaterialLoadCurve,
    ),
    "material_support": ModelBinding(
        model=MaterialSupport, key_attr="support_type", match_attr="support_type_key"
    ),
}


def get_binding(entity_type: str) -> ModelBinding:
    """Look up the model binding of a profile; raises ValueError if unknown."""
    try:
        return MODEL_BINDINGS[entity_type]
    except KeyError:
        raise ValueError(f"No model binding for import profile '{entity_type}'") from None


def _to_column_value(column, value: Any) -> Any:
    # Date columns receive ISO strings from the normalizer
    if isinstance(value, str) and isinstance(column.type, Date):
        return date.fromisoformat(value)
    return value


class _SessionStore:
    """Shared transaction handling for the import stores."""

    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._active: Optional[Session] = None

    @contextmanager
    def transaction(self):
        if self._session is not None:
            with self._session.begin_nested():
                self._active = self._session
                try:
                    yield self._session
                finally:
                    self._active = None
        else:
            with session_scope() as session:
                self._active = session
                try:
                    yield session
                finally:
                    self._active = None

    @contextmanager
    def _reading(self):
        """Session for reads outside a transaction."""
        if self._active is not None:
            yield self._active
        elif self._session is not None:
            yield self._session
        else:
            with session_scope() as session:
                yield session

    def _require_active(self) -> Session:
        if self._active is None:
            raise RuntimeError("Store call requires an open transaction")
        return self._active


# ============================================================================
# Upsert mode
# ============================================================================


class SqlAlchemyUpsertStore(_SessionStore):
    """
    UpsertStore backed by the ORM model bound to an import profile.

    Args:
        profile: Import profile being run
        session: Optional session; the import then runs in a SAVEPOINT
    """

    def __init__(self, profile: ImportProfile, session: Optional[Session] = None):
        super().__init__(session)
        self.profile = profile
        self.binding = get_binding(profile.entity_type)
        self._loaded: Dict[str, BaseModel] = {}

    def _scoped(self, query, model, scope_attr: Optional[str], parent_scope: Any):
        if scope_attr is not None:
            query = query.filter(getattr(model, scope_attr) == parent_scope)
        return query

    def _lock_parent(self, session: Session, parent_scope: Any) -> None:
        # The parent may have been deleted since the caller checked it
        scope_model = self.binding.scope_model
        if scope_model is None:
            return
        found = (
            session.query(scope_model.id)
            .filter(scope_model.id == parent_scope)
            .with_for_update()
            .first()
        )
        if found is None:
            raise ParentNotFound(self.binding.scope_label, parent_scope)

    def lookup_references(self, parent_scope: Any, names: Set[str]) -> Dict[str, Any]:
        binding = self.binding
        if binding.reference_model is None or not names:
            return {}

        model = binding.reference_model
        match_column = getattr(model, binding.reference_match_attr)
        with self._reading() as session:
            query = session.query(model.id, match_column).filter(match_column.in_(sorted(names)))
            query = self._scoped(query, model, binding.reference_scope_attr, parent_scope)
            return {name_key: ref_id for ref_id, name_key in query.all()}

    def fetch_existing(self, parent_scope: Any, keys: Sequence[str]) -> Dict[str, ExistingRecord]:
        session = self._require_active()
        binding = self.binding
        model = binding.model
        match_column = getattr(model, binding.match_attr)
        reference_field = self.profile.reference.field if self.profile.reference else None

        self._loaded = {}
        self._lock_parent(session, parent_scope)
        if not keys:
            return {}

        query = session.query(model).filter(match_column.in_(sorted(set(keys))))
        query = self._scoped(query, model, binding.scope_attr, parent_scope).with_for_update()

        existing: Dict[str, ExistingRecord] = {}
        for obj in query.all():
            key = getattr(obj, binding.match_attr)
            self._loaded[obj.uuid] = obj
            existing[key] = ExistingRecord(
                record_id=obj.uuid,
                key=key,
                fields={name: getattr(obj, name) for name in self.profile.tracked_fields},
                reference_id=getattr(obj, reference_field) if reference_field else None,
            )
        return existing

    def persist(self, parent_scope: Any, request: PersistRequest) -> None:
        session = self._require_active()
        binding = self.binding
        columns = binding.model.__table__.columns

        values = {name: _to_column_value(columns[name], value) for name, value in request.fields.items()}
        if self.profile.reference is not None:
            values[self.profile.reference.field] = request.reference_id

        if request.is_new:
            obj = binding.model(uuid=request.record_id, **values)
            setattr(obj, binding.key_attr, request.key_value)
            if binding.scope_attr is not None:
                setattr(obj, binding.scope_attr, parent_scope)
            session.add(obj)
            self._loaded[obj.uuid] = obj
        else:
            obj = self._loaded.get(request.record_id)
            if obj is None:
                obj = session.query(binding.model).filter_by(uuid=request.record_id).one()
            obj.update_from_dict(values)

        session.flush()


# ============================================================================
# Child-set mode
# ============================================================================


class SqlAlchemyChildSetStore(_SessionStore):
    """ChildSetStore for material load curve points."""

    def _curve(self, session: Session, parent_id: Any) -> Optional[MaterialLoadCurve]:
        return (
            session.query(MaterialLoadCurve)
            .filter(MaterialLoadCurve.id == parent_id)
            .with_for_update()
            .first()
        )

    def parent_exists(self, parent_id: Any) -> bool:
        return self._curve(self._require_active(), parent_id) is not None

    def delete_children(self, parent_id: Any) -> int:
        session = self._require_active()
        deleted = (
            session.query(MaterialLoadCurvePoint)
            .filter(MaterialLoadCurvePoint.load_curve_id == parent_id)
            .delete(synchronize_session=False)
        )
        session.flush()
        return deleted

    def insert_children(self, parent_id: Any, items: Sequence[ChildItem]) -> None:
        session = self._require_active()
        points: List[MaterialLoadCurvePoint] = [
            MaterialLoadCurvePoint(
                load_curve_id=parent_id,
                point_order=item.order,
                span_m=item.primary_value,
                load_kn_per_m=item.secondary_value,
            )
            for item in items
        ]
        session.add_all(points)
        session.flush()

    def touch_parent(self, parent_id: Any) -> None:
        session = self._require_active()
        curve = self._curve(session, parent_id)
        curve.updated_at = utc_now()
        # Points were replaced behind the relationship's back
        session.expire(curve, ["points"])
        session.flush()

"""
Report domain types and defensive document parsing.

Remote documents use camelCase keys (``metradoP``, ``elaboradoPor``); the
dataclasses here use snake_case and always hold parsed numerics. Every type
round-trips through ``to_dict``/``from_dict`` so query results can live in
the persistent cache.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional


def to_number(value: Any) -> float:
    """
    Parse a possibly-malformed numeric field.

    Missing, non-numeric, non-finite and negative values all become 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


# =============================================================================
# REPORT CHILDREN
# =============================================================================

@dataclass
class Activity:
    """One planned-vs-executed line within a report."""
    proceso: str
    und: str = ""
    metrado_p: float = 0.0
    metrado_e: float = 0.0
    precio: float = 0.0
    ubicacion: Optional[str] = None
    comentarios: Optional[str] = None
    causas: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_document(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> "Activity":
        return cls(
            id=doc_id,
            proceso=_text(data.get("proceso")),
            und=_text(data.get("und")),
            metrado_p=to_number(data.get("metradoP")),
            metrado_e=to_number(data.get("metradoE")),
            precio=to_number(data.get("precio")),
            ubicacion=_optional_text(data.get("ubicacion")),
            comentarios=_optional_text(data.get("comentarios")),
            causas=_optional_text(data.get("causas")),
        )

    @property
    def avance(self) -> Optional[float]:
        """Progress %, or None when nothing was planned."""
        if self.metrado_p <= 0:
            return None
        return self.metrado_e / self.metrado_p * 100


@dataclass
class WorkerHours:
    """
    One worker's hours within a report.

    ``horas[i]`` is the time spent on the report's ``actividades[i]``.
    """
    trabajador: str
    categoria: str = ""
    dni: str = ""
    horas: List[float] = field(default_factory=list)
    especificacion: Optional[str] = None
    observacion: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_document(cls, data: Dict[str, Any], doc_id: Optional[str] = None) -> "WorkerHours":
        raw_hours = data.get("horas")
        if not isinstance(raw_hours, (list, tuple)):
            raw_hours = []
        return cls(
            id=doc_id,
            dni=_text(data.get("dni")),
            trabajador=_text(data.get("trabajador")),
            categoria=_text(data.get("categoria")),
            especificacion=_optional_text(data.get("especificacion")),
            horas=[to_number(h) for h in raw_hours],
            observacion=_optional_text(data.get("observacion")),
        )

    def hours_on(self, activity_index: int) -> float:
        """Hours on one activity; a missing position counts as zero."""
        if 0 <= activity_index < len(self.horas):
            return self.horas[activity_index]
        return 0.0

    @property
    def total_horas(self) -> float:
        return float(sum(self.horas))


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class ReportDetail:
    """A field report with its activities and worker-hours fully materialised."""
    id: str
    fecha: str
    elaborado_por: str = ""
    subcontratista_bloque: str = ""
    revisado_por: str = ""
    timestamp: str = ""
    usuario_email: str = ""
    usuario_uid: str = ""
    actividades: List[Activity] = field(default_factory=list)
    mano_obra: List[WorkerHours] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any],
                      activity_docs: Optional[List[Any]] = None,
                      labor_docs: Optional[List[Any]] = None) -> "ReportDetail":
        """
        Build a report from its document and child documents.

        Child documents are anything with ``id`` and ``data`` attributes
        (see ``obra_dashboard.data.store.DocumentSnapshot``).
        """
        return cls(
            id=doc_id,
            fecha=_text(data.get("fecha")),
            elaborado_por=_text(data.get("elaboradoPor")),
            subcontratista_bloque=_text(data.get("subcontratistaBloque")),
            revisado_por=_text(data.get("revisadoPor")),
            timestamp=_text(data.get("timestamp")),
            usuario_email=_text(data.get("usuarioEmail")),
            usuario_uid=_text(data.get("usuarioUID")),
            actividades=[Activity.from_document(d.data, d.id) for d in (activity_docs or [])],
            mano_obra=[WorkerHours.from_document(d.data, d.id) for d in (labor_docs or [])],
        )

    @property
    def report_date(self) -> Optional[date]:
        try:
            return date.fromisoformat(self.fecha[:10])
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportDetail":
        data = dict(data)
        data["actividades"] = [Activity(**a) for a in data.get("actividades", [])]
        data["mano_obra"] = [WorkerHours(**w) for w in data.get("mano_obra", [])]
        return cls(**data)


# =============================================================================
# QUERY INTENT AND RESULTS
# =============================================================================

@dataclass(frozen=True)
class FilterValues:
    """Query intent: date window, optional exact-match filters and paging."""
    start: date
    end: date
    predefined_period: str = "30"
    subcontratista: str = ""
    elaborado_por: str = ""
    categoria: str = ""
    page: int = 1
    page_size: int = 10

    def _key_parts(self) -> List[Any]:
        return [
            self.start.isoformat(),
            self.end.isoformat(),
            self.subcontratista,
            self.elaborado_por,
        ]

    def cache_key(self, prefix: str = "reports", paged: bool = True) -> str:
        """Deterministic key over every filter field (JSON-encoded so values cannot collide)."""
        parts = self._key_parts() + [self.categoria]
        if paged:
            parts += [self.page, self.page_size]
        return f"{prefix}:{json.dumps(parts, ensure_ascii=False)}"

    def count_key(self, prefix: str = "count") -> str:
        """Key for the total-item count; category is client-side so it is left out."""
        return f"{prefix}:{json.dumps(self._key_parts(), ensure_ascii=False)}"


@dataclass
class FilterOptions:
    """Facets for the filter selectors."""
    subcontratistas: List[str] = field(default_factory=list)
    elaboradores: List[str] = field(default_factory=list)
    categorias: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PageCursor:
    """Position of a document in the date-descending ordering."""
    fecha: str
    doc_id: str


@dataclass
class PaginationInfo:
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool


@dataclass
class ReportPage:
    """Result of one report query."""
    reports: List[ReportDetail] = field(default_factory=list)
    first_cursor: Optional[PageCursor] = None
    last_cursor: Optional[PageCursor] = None
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    total_items: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reports": [r.to_dict() for r in self.reports],
            "first_cursor": asdict(self.first_cursor) if self.first_cursor else None,
            "last_cursor": asdict(self.last_cursor) if self.last_cursor else None,
            "filter_options": asdict(self.filter_options),
            "total_items": self.total_items,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportPage":
        first = data.get("first_cursor")
        last = data.get("last_cursor")
        return cls(
            reports=[ReportDetail.from_dict(r) for r in data.get("reports", [])],
            first_cursor=PageCursor(**first) if first else None,
            last_cursor=PageCursor(**last) if last else None,
            filter_options=FilterOptions(**data.get("filter_options", {})),
            total_items=int(data.get("total_items", 0)),
        )


@dataclass
class KPIMetrics:
    """Scalar KPI snapshot over a report list."""
    total_reportes: int = 0
    total_actividades: int = 0
    total_trabajadores: int = 0
    avance_promedio: float = 0.0
    costo_total: float = 0.0
    costo_mano_obra: float = 0.0
    costo_promedio_por_unidad: float = 0.0
    indice_eficiencia: float = 0.0

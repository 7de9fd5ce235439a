"""
Regulatory discharge limits.

The limits are data, not logic: they are read once from a JSON file
(`data/discharge_limits.json` by default) into an immutable
`RegulatoryTable` and handed explicitly to whoever evaluates compliance.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Literal, Mapping, Optional, Tuple, Union

from .validators import require_finite, require_non_negative, require_one_of, require_positive

logger = logging.getLogger(__name__)

DEFAULT_LIMITS_PATH = Path(__file__).parent / "data" / "discharge_limits.json"


# ---------- Limit descriptors ----------
@dataclass(frozen=True)
class RangeLimit:
    min: float
    max: float
    type: Literal["range"] = "range"


@dataclass(frozen=True)
class MaxLimit:
    limit: float
    type: Literal["max"] = "max"


@dataclass(frozen=True)
class AnalysisOnly:
    type: Literal["analysis"] = "analysis"


Limit = Union[RangeLimit, MaxLimit, AnalysisOnly]


@dataclass(frozen=True)
class Parameter:
    id: str
    name: str
    unit: Optional[str] = None


@dataclass(frozen=True)
class RegulatoryTable:
    name: str
    receptors: Tuple[str, ...]
    categories: Tuple[str, ...]
    parameters: Tuple[Parameter, ...]
    ph_range: Mapping[str, Tuple[float, float]]
    temperature_max: float
    sewer_cod_factor: float
    surface_limits: Mapping[str, Mapping[str, float]]
    analysis_only: Tuple[str, ...]
    # parameter -> ((upper bound or inf, grade), ...)
    quality_scales: Mapping[str, Tuple[Tuple[float, str], ...]]

    def lookup(self, parameter_id: str, receptor: str, category: str) -> Limit:
        require_one_of("receptor", receptor, self.receptors)
        require_one_of("category", category, self.categories)

        if parameter_id == "ph":
            lo, hi = self.ph_range[receptor]
            return RangeLimit(min=lo, max=hi)
        if parameter_id == "temperature":
            return MaxLimit(limit=self.temperature_max)
        if parameter_id in self.analysis_only:
            return AnalysisOnly()

        base = self.surface_limits[category].get(parameter_id)
        if base is None:
            return AnalysisOnly()
        if parameter_id == "cod" and receptor == "sewer":
            return MaxLimit(limit=round(self.sewer_cod_factor * base, 2))
        return MaxLimit(limit=base)


def _scale(entries) -> Tuple[Tuple[float, str], ...]:
    out = []
    for bound, grade in entries:
        if bound is None:
            bound = math.inf
        else:
            require_finite("quality scale bound", bound)
        out.append((float(bound), str(grade)))
    return tuple(out)


def table_from_dict(raw: dict) -> RegulatoryTable:
    receptors = tuple(raw["receptors"])
    categories = tuple(raw["categories"])

    ph_range = {}
    for receptor in receptors:
        lo, hi = raw["ph_range"][receptor]
        require_finite(f"ph_range[{receptor}]", lo)
        require_finite(f"ph_range[{receptor}]", hi)
        ph_range[receptor] = (float(lo), float(hi))

    surface = {}
    for category in categories:
        limits = raw["surface_limits"][category]
        for pid, value in limits.items():
            require_finite(f"surface_limits[{category}][{pid}]", value)
            require_non_negative(f"surface_limits[{category}][{pid}]", value)
        surface[category] = MappingProxyType({k: float(v) for k, v in limits.items()})

    require_finite("temperature_max", raw["temperature_max"])
    require_finite("sewer_cod_factor", raw["sewer_cod_factor"])
    require_positive("sewer_cod_factor", raw["sewer_cod_factor"])

    return RegulatoryTable(
        name=raw.get("name", ""),
        receptors=receptors,
        categories=categories,
        parameters=tuple(Parameter(**p) for p in raw["parameters"]),
        ph_range=MappingProxyType(ph_range),
        temperature_max=float(raw["temperature_max"]),
        sewer_cod_factor=float(raw["sewer_cod_factor"]),
        surface_limits=MappingProxyType(surface),
        analysis_only=tuple(raw.get("analysis_only", ())),
        quality_scales=MappingProxyType(
            {pid: _scale(entries) for pid, entries in raw.get("quality_scales", {}).items()}
        ),
    )


def load_table(path: Optional[Path] = None) -> RegulatoryTable:
    path = Path(path) if path else DEFAULT_LIMITS_PATH
    logger.info("Loading discharge limits from %s", path)
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    try:
        return table_from_dict(raw)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed discharge limits file {path}: {exc}") from exc

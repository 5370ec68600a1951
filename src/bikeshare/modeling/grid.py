import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from bikeshare import logging
from bikeshare.exception import InvalidGrid
from bikeshare.modeling.model_spec import ModelSpec


@dataclass(frozen=True)
class ParamRange:
    """
    Numeric range of a tunable argument.

    ``lower`` and ``upper`` are given in the transformed scale: with
    ``transform="log10"`` the range ``(-3, -1)`` spans 0.001 to 0.1.
    """
    lower: float
    upper: float
    transform: Optional[str] = None
    integer: bool = False

    def __post_init__(self):
        if self.transform not in (None, "log10"):
            raise InvalidGrid(f"Unknown transform '{self.transform}'")
        if self.lower > self.upper:
            raise InvalidGrid(f"Lower bound {self.lower} exceeds upper bound {self.upper}")

    def _natural(self, points: np.ndarray) -> List[Any]:
        if self.transform == "log10":
            points = np.power(10.0, points)
        if not self.integer:
            return [float(point) for point in points]
        values = []
        for point in points:
            value = int(np.rint(point))
            if value not in values:
                values.append(value)
        return values

    def values(self, levels: int) -> Tuple[Any, ...]:
        """Evenly spaced values in the transformed scale, mapped back to natural units."""
        if levels < 1:
            raise InvalidGrid(f"levels must be at least 1, got {levels}")
        if levels == 1:
            return tuple(self._natural(np.array([self.lower])))
        return tuple(self._natural(np.linspace(self.lower, self.upper, levels)))

    def sample(self, rng: np.random.Generator) -> Any:
        return self._natural(np.array([rng.uniform(self.lower, self.upper)]))[0]


ParamValues = Union[ParamRange, Sequence[Any]]

PARAMETER_DEFAULTS: Dict[str, ParamRange] = {
    "trees": ParamRange(1, 2000, integer=True),
    "tree_depth": ParamRange(1, 15, integer=True),
    "learn_rate": ParamRange(-10, -1, transform="log10"),
    "min_n": ParamRange(2, 40, integer=True),
    "loss_reduction": ParamRange(-10, 1.5, transform="log10"),
    "sample_size": ParamRange(0.1, 1.0),
    "mtry": ParamRange(1, 10, integer=True),
    "penalty": ParamRange(-10, 0, transform="log10"),
    "mixture": ParamRange(0.05, 1.0),
}


@dataclass(frozen=True)
class Candidate:
    """One cell of a tuning grid: a config id and ordered argument values."""
    config: str
    values: Tuple[Tuple[str, Any], ...] = ()

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self.values)

    def __repr__(self) -> str:
        return f"Candidate({self.config}, {self.params})"


def _native(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def _value_set(name: str, values: ParamValues, levels: int) -> Tuple[Any, ...]:
    if isinstance(values, ParamRange):
        return values.values(levels)
    if isinstance(values, np.ndarray):
        values = values.tolist()
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidGrid(f"Values of '{name}' must be a ParamRange or a sequence, got {values!r}")
    if len(values) == 0:
        raise InvalidGrid(f"No candidate values given for '{name}'")
    return tuple(_native(value) for value in values)


def make_candidates(rows: Sequence[Sequence[Any]], names: Sequence[str]) -> List[Candidate]:
    rows = list(rows)
    width = len(str(len(rows)))
    return [
        Candidate(config=f"Model{i:0{width}d}", values=tuple(zip(names, row)))
        for i, row in enumerate(rows, start=1)
    ]


def regular_grid(params: Mapping[str, ParamValues], levels: Union[int, Mapping[str, int]] = 3) -> List[Candidate]:
    """
    Cross product of per-argument value sets.

    Args:
        params (Mapping): Argument name to a ParamRange or explicit values, in declaration order.
        levels (int | Mapping): Number of values per range, globally or per argument.

    Returns:
        List[Candidate]: The candidates; the first argument varies slowest.
    """
    names = list(params)
    value_sets = []
    for name in names:
        n_levels = levels.get(name, 3) if isinstance(levels, Mapping) else levels
        value_sets.append(_value_set(name, params[name], n_levels))
    candidates = make_candidates(itertools.product(*value_sets), names)
    logging.info(
        f"Regular grid over {names} with {[len(values) for values in value_sets]} values: "
        f"{len(candidates)} candidates"
    )
    return candidates


def random_grid(params: Mapping[str, ParamValues], size: int = 10, seed: Optional[int] = None) -> List[Candidate]:
    """Random design: ``size`` distinct draws, uniform in the transformed scale of each range."""
    if size < 1:
        raise InvalidGrid(f"size must be at least 1, got {size}")
    rng = np.random.default_rng(seed)
    names = list(params)
    rows = []
    for _ in range(size * 10):
        row = tuple(
            params[name].sample(rng) if isinstance(params[name], ParamRange)
            else _native(params[name][rng.integers(len(params[name]))])
            for name in names
        )
        if row not in rows:
            rows.append(row)
        if len(rows) == size:
            break
    return make_candidates(rows, names)


def grid_for_spec(
        spec: ModelSpec,
        levels: Union[int, Mapping[str, int]] = 3,
        overrides: Optional[Mapping[str, ParamValues]] = None,
        ) -> List[Candidate]:
    """Regular grid over the tunable arguments of a spec, using PARAMETER_DEFAULTS unless overridden."""
    overrides = overrides or {}
    params = {}
    for name in spec.tunable_params():
        if name in overrides:
            params[name] = overrides[name]
        elif name in PARAMETER_DEFAULTS:
            params[name] = PARAMETER_DEFAULTS[name]
        else:
            raise InvalidGrid(f"No value range for tuned argument '{name}'")
    unused = [name for name in overrides if name not in params]
    if unused:
        raise InvalidGrid(f"Ranges given for {unused}, which are not tuned in {spec}")
    return regular_grid(params, levels)


def param_from_config(settings: Mapping[str, Any]) -> ParamValues:
    """
    Convert a ``{type, min, max, log}`` or ``{type: categorical, choices}``
    mapping from ``model.yaml`` into grid values. ``min`` and ``max`` are in
    natural units; ``log: true`` spaces the levels on a log10 scale.
    """
    param_type = settings.get("type", "float")
    if param_type == "categorical" or "choices" in settings:
        return tuple(settings["choices"])
    if "values" in settings:
        return tuple(settings["values"])
    if param_type not in ("int", "float"):
        raise InvalidGrid(f"Unknown parameter type '{param_type}'")

    lower, upper = settings["min"], settings["max"]
    if settings.get("log", False):
        return ParamRange(float(np.log10(lower)), float(np.log10(upper)), transform="log10",
                          integer=param_type == "int")
    return ParamRange(lower, upper, integer=param_type == "int")


def grid_from_config(spec: ModelSpec, config: Mapping[str, Any], levels: Union[int, Mapping[str, int]] = 3) -> List[Candidate]:
    """Regular grid for a ``model.yaml`` entry, ranges taken from its tuned arguments."""
    overrides = {
        name: param_from_config(settings)
        for name, settings in (config.get("args") or {}).items()
        if isinstance(settings, dict)
    }
    return grid_for_spec(spec, levels=config.get("grid_levels", levels), overrides=overrides)

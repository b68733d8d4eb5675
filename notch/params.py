"""Pipe parameter definition, loading from dict/JSON and output file naming."""

import json
import math
import numbers
from dataclasses import dataclass, fields, replace, asdict


TEMPLATE_KINDS = ("pipe", "hole")

# Original tool used camelCase keys; both spellings are accepted on load.
_KEY_ALIASES = {
    'weldingGap': 'welding_gap',
    'startAngle': 'start_angle',
    'paddingD1': 'padding_d1',
    'paddingD2': 'padding_d2',
    'calcByID': 'calc_by_id',
}


@dataclass(frozen=True)
class PipeParameters:
    """
    Inputs for one notch computation. Lengths in mm, angles in degrees.

    calc_by_id selects the branch radius used for the intersection test:
    True tests against the outer radius (d2/2), False against the inner
    radius (d2/2 - thickness). The drawn geometry always uses the outer
    radius, whatever the flag says.
    """
    d1: float = 100.0
    d2: float = 50.0
    thickness: float = 2.0
    angle: float = 45.0
    offset: float = 0.0
    welding_gap: float = 0.0
    start_angle: float = 0.0
    padding_d1: float = 20.0
    padding_d2: float = 20.0
    calc_by_id: bool = True

    @property
    def r1(self):
        return self.d1 / 2

    @property
    def r2_outer(self):
        return self.d2 / 2

    @property
    def r2_inner(self):
        return self.d2 / 2 - self.thickness

    @property
    def r2_calc(self):
        """Radius feeding the intersection test (see class docstring)."""
        return self.r2_outer if self.calc_by_id else self.r2_inner

    def has_valid_diameters(self):
        """True when both diameters are present, finite and positive."""
        for d in (self.d1, self.d2):
            if not isinstance(d, numbers.Real) or isinstance(d, bool):
                return False
            if not math.isfinite(d) or d <= 0:
                return False
        return True

    def padding_for(self, kind):
        """Sheet padding for a template kind ('pipe' -> D2, 'hole' -> D1)."""
        check_kind(kind)
        padding = self.padding_d2 if kind == "pipe" else self.padding_d1
        return padding or 0.0

    def replace(self, **changes):
        """Return a copy with some fields changed."""
        return replace(self, **changes)

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        """
        Build parameters from a mapping (snake_case or camelCase keys).
        Missing keys take the defaults. Unknown keys raise ValueError.
        """
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown parameter: {key!r}")
            if name == 'calc_by_id':
                values[name] = _to_bool(value)
            else:
                try:
                    values[name] = float(value)
                except (TypeError, ValueError):
                    raise ValueError(
                        f"Parameter {key!r} must be a number, got {value!r}")
        return cls(**values)


def _to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def check_kind(kind):
    """Raise ValueError for anything other than 'pipe' or 'hole'."""
    if kind not in TEMPLATE_KINDS:
        raise ValueError(
            f"Unknown template kind {kind!r}, expected one of {TEMPLATE_KINDS}")
    return kind


def load_params(filepath):
    """Load PipeParameters from a JSON file (flat object or {"params": {...}})."""
    with open(filepath, encoding='utf-8') as f:
        data = json.load(f)
    if 'params' in data and isinstance(data['params'], dict):
        data = data['params']
    return PipeParameters.from_dict(data)


def format_number(value):
    """Shortest readable form for file names: 100.0 -> '100', 45.5 -> '45.5'."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def dxf_filename(params, kind):
    check_kind(kind)
    return (f"notch_D{format_number(params.d2)}_on_D{format_number(params.d1)}"
            f"_{format_number(params.angle)}deg_{kind}.dxf")


def pdf_filename(params, kind):
    check_kind(kind)
    return f"notch_D{format_number(params.d1)}_D{format_number(params.d2)}_{kind}.pdf"


def xlsx_filename(params):
    return f"notch_D{format_number(params.d2)}_on_D{format_number(params.d1)}_ordinates.xlsx"


def stl_filename(params):
    return (f"notch_D{format_number(params.d2)}_on_D{format_number(params.d1)}"
            f"_{format_number(params.angle)}deg_branch.stl")

"""Line-oriented text persistence for networks.

Layout, one record per line::

    <layers>
    <input_size>
    <output_size>
    <u0>,<u1>,...,<u(L-1)>
    <hidden_weight_0> ... <hidden_weight_L>        "rows,cols#v0,v1,..."
    <recurrence_weight_0> ... <recurrence_weight_(L-1)>   (recurrent only)
    <bias_0> ... <bias_L>                          "len#v0,v1,..."
    <hidden_activation>
    <output_activation>
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from ..core.activations import Activation
from ..core.errors import SaveFileNotFoundError, SaveFormatError, UnknownActivationError
from ..core.parameters import Bias, Weight
from ..core.types import ActivationConfig, ParameterConfig
from .network import NN, RNN, Network

logger = logging.getLogger(__name__)

_HEADER_LINES = 4
_TRAILER_LINES = 2


def to_lines(network: Network) -> List[str]:
    lines = [
        str(network.layers),
        str(network.input_size),
        str(network.output_size),
        ",".join(str(u) for u in network.units_by_layer),
    ]
    lines.extend(weight.to_text() for weight in network.hidden_weights)
    lines.extend(weight.to_text() for weight in network.recurrence_weights)
    lines.extend(bias.to_text() for bias in network.biases)
    lines.append(network.hidden_activation.key)
    lines.append(network.output_activation.key)
    return lines


def save_to_file(network: Network, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(to_lines(network)) + "\n", encoding="utf-8")
    logger.info("Saved %r to %s", network, path)


def _parse_int(text: str, field: str) -> int:
    try:
        return int(text.strip())
    except ValueError as exc:
        raise SaveFormatError(f"Failed to parse {field} from {text!r}") from exc


def _next(lines: Iterator[str], field: str) -> str:
    try:
        return next(lines)
    except StopIteration:
        raise SaveFormatError(f"Save file ended before {field}") from None


def _parse_activation(text: str, field: str) -> Activation:
    try:
        return Activation.from_name(text)
    except UnknownActivationError as exc:
        raise SaveFormatError(f"Invalid {field}: {exc}") from exc


def from_lines(lines: Sequence[str], recurrent: Optional[bool] = None) -> Network:
    """Rebuild a network from save-file records.

    When ``recurrent`` is ``None`` the layout is inferred from the record
    count; otherwise the matching layout is required.
    """

    records = [line.strip() for line in lines]
    while records and not records[-1]:
        records.pop()
    it = iter(records)

    layers = _parse_int(_next(it, "layer count"), "layer count")
    input_size = _parse_int(_next(it, "input size"), "input size")
    output_size = _parse_int(_next(it, "output size"), "output size")
    units_line = _next(it, "units by layer")
    units_by_layer = tuple(
        _parse_int(part, "layer dimension") for part in units_line.split(",")
    )
    params = ParameterConfig(layers, input_size, output_size, units_by_layer)
    try:
        params.validate()
    except ValueError as exc:
        raise SaveFormatError(f"Invalid network header: {exc}") from exc

    recurrent_count = _HEADER_LINES + 3 * layers + 2 + _TRAILER_LINES
    plain_count = _HEADER_LINES + 2 * layers + 2 + _TRAILER_LINES
    if recurrent is None:
        if len(records) == recurrent_count:
            recurrent = True
        elif len(records) == plain_count:
            recurrent = False
        else:
            raise SaveFormatError(
                f"Save file has {len(records)} records; expected {recurrent_count} "
                f"(recurrent) or {plain_count} (feed-forward) for {layers} layers"
            )
    expected = recurrent_count if recurrent else plain_count
    if len(records) != expected:
        raise SaveFormatError(f"Save file has {len(records)} records, expected {expected}")

    hidden_weights = [
        Weight.from_text(_next(it, f"hidden weight {i}")) for i in range(layers + 1)
    ]
    recurrence_weights = (
        [Weight.from_text(_next(it, f"recurrence weight {i}")) for i in range(layers)]
        if recurrent
        else []
    )
    biases = [Bias.from_text(_next(it, f"bias {i}")) for i in range(layers + 1)]
    activations = ActivationConfig(
        hidden=_parse_activation(_next(it, "hidden activation"), "hidden activation"),
        output=_parse_activation(_next(it, "output activation"), "output activation"),
    )

    cls = RNN if recurrent else NN
    try:
        return cls.from_parameters(params, hidden_weights, recurrence_weights, biases, activations)
    except ValueError as exc:
        raise SaveFormatError(str(exc)) from exc


def from_save(path: str | Path, recurrent: Optional[bool] = None) -> Network:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SaveFileNotFoundError(f"No save file at {path}") from exc
    network = from_lines(text.splitlines(), recurrent=recurrent)
    logger.debug("Loaded %r from %s", network, path)
    return network


__all__ = ["to_lines", "save_to_file", "from_lines", "from_save"]

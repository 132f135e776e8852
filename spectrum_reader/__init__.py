"""spectrum-reader public API."""

from .converter import ENCODING_LENGTH, INPUT_SIZE, RNNConverter
from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import Activation
from .core.errors import SaveFileNotFoundError, SaveFormatError, ShapeMismatchError
from .core.types import ActivationConfig, ConverterConfig, ParameterConfig, WeightConfig
from .networks import LEARNING_RATE, NN, RNN, Network, from_save
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "Activation",
    "ActivationConfig",
    "ConverterConfig",
    "ENCODING_LENGTH",
    "INPUT_SIZE",
    "LEARNING_RATE",
    "NN",
    "Network",
    "ParameterConfig",
    "RNN",
    "RNNConverter",
    "SaveFileNotFoundError",
    "SaveFormatError",
    "ShapeMismatchError",
    "Trainer",
    "WeightConfig",
    "activations",
    "from_save",
    "load_preset",
    "presets",
    "run_pipeline",
    "types",
]

"""Recurrent and feed-forward networks plus their save format."""

from .network import LEARNING_RATE, NN, RNN, Network
from .save import from_save, save_to_file

__all__ = ["LEARNING_RATE", "Network", "RNN", "NN", "from_save", "save_to_file"]

"""Season progression and reward distribution engine for the idle clicker backend."""

__version__ = "0.1.0"

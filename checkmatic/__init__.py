"""CheckMatic: credibility and bias analysis for submitted articles."""

__version__ = "1.0.0"

"""contextor - build LLM-ready context documents from source trees."""

__version__ = "0.1.0"

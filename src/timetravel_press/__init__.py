"""TimeTravel Press - AI-generated vintage Japanese newspapers for any date."""

__version__ = "0.1.0"

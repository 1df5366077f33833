"""stackgen: validate a web stack selection and scaffold the project."""

__version__ = "0.1.0"

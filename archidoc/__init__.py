"""archidoc: compile architecture documentation from annotated source trees."""

__version__ = "0.4.0"

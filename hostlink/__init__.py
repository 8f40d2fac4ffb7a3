"""hostlink: controller/producer relay plus the host application API."""

__version__ = "0.1.0"

"""Tail a growing ADIF log and upload new QSO records to a Cloudlog-style API."""

__version__ = "0.3.0"

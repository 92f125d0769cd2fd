"""Unisave Uploader: sync backend code to the Unisave server and compile it there."""

__version__ = "0.7.0"

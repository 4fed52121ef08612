"""
stencilir utilities package
"""

from .io_utils import read_binary_file, write_binary_file, read_text_file, write_text_file

__all__ = ["read_binary_file", "write_binary_file", "read_text_file", "write_text_file"]

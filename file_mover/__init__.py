"""
File Mover
==========

Watches a directory and moves newly arriving files that match an
extension allow-list and a filename pattern into a target directory,
retrying while the file is still held open by its writer.
"""

__version__ = "0.1.0"

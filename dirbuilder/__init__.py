"""
dirbuilder package

This package implements a directory-to-directory build pipeline as a CLI-first utility.

Key responsibilities are split across modules:
- `config.py`: load `.buildrc` and resolve it into an immutable `BuildConfig`
- `commands.py`: run shell commands (one at a time, or a whole stage in order)
- `copier.py`: remove the destination tree and copy the whitelisted file set
- `gitinfo.py`: read branch / short hash / commit count of the source tree
- `provenance.py`: render and write the `.buildinfo` stamp
- `pipeline.py`: the fixed, fail-fast stage sequence
- `cli.py`: CLI entrypoint and orchestration (args -> config -> pipeline -> exit code)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"

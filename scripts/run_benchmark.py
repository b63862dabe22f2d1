#!/usr/bin/env python3
"""Run one benchmark from a YAML file (same flags as the ``tsbench`` command)."""

from tsbench.main import main

if __name__ == "__main__":
    raise SystemExit(main())

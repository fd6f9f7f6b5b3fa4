from __future__ import annotations

from sheet_sync.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

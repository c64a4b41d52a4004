"""Allow ``python -m templexer``."""
from templexer.src.cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

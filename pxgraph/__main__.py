"""Allow ``python -m pxgraph``."""

from pxgraph.cli import main

if __name__ == "__main__":
    main()

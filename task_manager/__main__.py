"""Allow running the tracker with ``python -m task_manager``."""

from .cli import main

if __name__ == "__main__":
    main()

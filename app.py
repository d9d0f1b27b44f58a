from __future__ import annotations

from interface_entry.bootstrap.app import main


if __name__ == "__main__":
    main()

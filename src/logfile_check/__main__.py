"""Module entrypoint.

Allows:
    python -m logfile_check -f /var/log/app.log -c ERROR
"""

from __future__ import annotations

from logfile_check.cli import main

if __name__ == "__main__":
    main()

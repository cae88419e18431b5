"""Gunny API entry point for running the source tree directly.

    python .              (from the repository root)

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

from gunny_api.__main__ import main

if __name__ == "__main__":
    main()

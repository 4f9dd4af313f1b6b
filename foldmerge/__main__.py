"""Allow running as ``python -m foldmerge``."""

from foldmerge import main

main()

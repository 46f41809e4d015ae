import sys

from cadence.app import main

if __name__ == "__main__":
    sys.exit(main.main())

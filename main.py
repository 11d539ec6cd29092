import sys

from jupiter_poller.app import main

if __name__ == "__main__":
    sys.exit(main())

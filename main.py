from app.harvester.run import main
import sys

if __name__ == "__main__":
    # Same flags as ``python -m app.harvester.run``; the backend and limits
    # may also come from HARVESTER_* environment variables.
    sys.exit(main(sys.argv[1:]))

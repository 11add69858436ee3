import sys

if __name__ == "__main__":
    from castbrowser.cli import main

    sys.exit(main())

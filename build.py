#!/usr/bin/env python3
from nanopage.cli import main

if __name__ == "__main__":
    main()

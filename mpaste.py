#!/usr/bin/python

# Script for running mathpaste directly from the repository, without properly installing it.
# (Actual installation will use `setup.py` and bypass this file.)

import sys
from mathpaste.lib import mpaste
sys.exit(mpaste.main())

"""
vmlaunch: create or start a single QEMU virtual machine.
"""

import logging

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

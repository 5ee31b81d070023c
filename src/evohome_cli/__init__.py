#!/usr/bin/env python3
"""A CLI for the evohome_listener library."""

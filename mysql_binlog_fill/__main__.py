#!/usr/bin/env python3
"""
Entry point for running mysql_binlog_fill as a module.
This file enables: python -m mysql_binlog_fill
"""

from .main import main

if __name__ == '__main__':
    main()

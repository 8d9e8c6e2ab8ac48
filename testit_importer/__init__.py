"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
TestIT Importer
A CLI tool for replicating an exported test-management project into Test IT
"""

__version__ = "0.1.0"

"""
Service Layer Module

Directory access for the reports: the LDAP client and the decoders for the
XML-valued replication attributes it reads.
"""

from .directory_client import DirectoryClient, functional_level_name

__all__ = [
    "DirectoryClient",
    "functional_level_name",
]

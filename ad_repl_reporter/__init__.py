"""
AD Replication Reporter

Reports Active Directory schema/forest/domain update versions and inter-DC
replication status to CSV files.
"""

__version__ = "1.0.0"

"""
finreport/api package marker.
"""

"""
finreport/schemas package marker.
"""

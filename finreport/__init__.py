"""
finreport package marker.
"""

"""
Laundry Operations Dashboard
"""

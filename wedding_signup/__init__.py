# wedding_signup/__init__.py
"""
Wedding site signup: slug reservation, paid and trial account provisioning.
"""

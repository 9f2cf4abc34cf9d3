"""This is the processing submodule.

This module contains the light processing pipeline: conditioning of the raw
illuminance, rest detection, melanopic and circadian stimulus models, dose and
suppression, the phase response integration, light source classification,
what-if simulations and chronotherapy plans.
"""

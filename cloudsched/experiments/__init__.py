"""Experiment package for comparing the scheduling strategies over many seeds.

Provides utilities to generate run plans, execute them, persist run-level
JSON results and summarize a batch into a CSV file.
"""

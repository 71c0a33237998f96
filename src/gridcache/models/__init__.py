"""Immutable data models for rows, fields, cells and change reasons."""

"""Canned SchoolSoft responses and a routing mock transport."""

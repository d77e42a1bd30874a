"""Deterministic requirements extraction.

Turns a markdown-like document into phases of classified tasks using regex and
keyword heuristics only; the same text always yields the same plan. Anything
smarter (an LLM pass over the document) belongs to the caller and must be fed
back in as plain text.
"""

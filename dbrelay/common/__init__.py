"""Codec and batch size helpers shared by both transfer directions."""

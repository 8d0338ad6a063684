"""Articulation extraction and the job matching pipeline.

The extractor is a pure function over document text; the matching pipeline
drives it across every partner institution of one job.
"""

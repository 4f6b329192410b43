"""
Services for the performance task workflow.
"""

"""Streamlit browser for the dataset explorer."""

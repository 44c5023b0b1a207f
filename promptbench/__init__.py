"""Prompt runner service: LLM-generated C++ and PlantUML with a browsable history."""

"""Pre-processors, pipelines and the processing manager."""

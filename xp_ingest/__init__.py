"""Flying Blue activity export ingestion: segmentation, classification and aggregation."""

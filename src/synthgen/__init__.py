"""synthgen: batch LLM content generation for the wellness admin console."""

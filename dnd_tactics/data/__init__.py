"""Static catalogs the engine reads directly."""

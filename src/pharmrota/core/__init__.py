# pharmrota/core - Result objects returned by engine operations

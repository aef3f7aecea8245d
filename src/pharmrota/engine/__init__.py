# pharmrota/engine - Service layer over the store and the engine functions
from .service import RotaService

__all__ = ["RotaService"]

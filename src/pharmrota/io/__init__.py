# pharmrota/io - Input/output handling
from .csv_loader import load_clinics, load_reference, load_requirements, load_staff, save_staff
from .results_export import export_week, week_to_dataframe
from .store import RotaStore

__all__ = [
    "load_staff", "load_requirements", "load_clinics", "load_reference", "save_staff",
    "export_week", "week_to_dataframe",
    "RotaStore",
]

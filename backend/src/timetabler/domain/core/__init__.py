from timetabler.domain.core.io import dataset_from_dict, schedule_to_dict
from timetabler.domain.core.validate import ValidationReport, validate_before_generate

__all__ = ["dataset_from_dict", "schedule_to_dict", "ValidationReport", "validate_before_generate"]

from . import user, patient, doctor, appointment, clinical_record, prescription, audit  # noqa: F401

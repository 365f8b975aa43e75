"""
Custom exceptions for the LabTrack laboratory workspace
"""


class LabTrackException(Exception):
    """Base exception for all LabTrack errors"""

    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ValidationException(LabTrackException):
    """Data validation exceptions"""
    pass


class ConfigurationException(LabTrackException):
    """Configuration-related exceptions"""
    pass


class NotFoundException(LabTrackException):
    """Requested record does not exist"""
    pass


class SampleNotFoundException(NotFoundException):
    """Sample lookup failures"""

    def __init__(self, sample_id: str):
        super().__init__(f"Sample {sample_id} not found", "SAMPLE_NOT_FOUND")
        self.sample_id = sample_id


class CatalogTestNotFoundException(NotFoundException):
    """Catalog lookup failures"""

    def __init__(self, test_id: str):
        super().__init__(f"Test {test_id} not found", "TEST_NOT_FOUND")
        self.test_id = test_id


class PatientNotFoundException(NotFoundException):
    """Patient lookup failures"""

    def __init__(self, patient_id: str):
        super().__init__(f"Patient {patient_id} not found", "PATIENT_NOT_FOUND")
        self.patient_id = patient_id


class InvalidStatusTransitionException(LabTrackException):
    """Sample status change not allowed by the workflow"""

    def __init__(self, sample_id: str, current, target):
        super().__init__(
            f"Sample {sample_id} cannot move from {current.value} to {target.value}",
            "INVALID_STATUS_TRANSITION",
        )
        self.sample_id = sample_id
        self.current = current
        self.target = target


class CatalogTestInUseException(LabTrackException):
    """Catalog entry is still referenced by samples"""

    def __init__(self, test_id: str, sample_count: int):
        super().__init__(
            f"Test {test_id} is referenced by {sample_count} sample(s) and cannot be deleted",
            "TEST_IN_USE",
        )
        self.test_id = test_id
        self.sample_count = sample_count


class ResultEntryException(LabTrackException):
    """Result entry and review exceptions"""
    pass


class UnknownViewException(NotFoundException):
    """No view registered for a role"""
    pass


class InventoryItemNotFoundException(NotFoundException):
    """Inventory lookup failures"""

    def __init__(self, item_id: str):
        super().__init__(f"Inventory item {item_id} not found", "ITEM_NOT_FOUND")
        self.item_id = item_id


class EquipmentNotFoundException(NotFoundException):
    """Equipment lookup failures"""

    def __init__(self, equipment_id: str):
        super().__init__(f"Equipment {equipment_id} not found", "EQUIPMENT_NOT_FOUND")
        self.equipment_id = equipment_id


class DoctorNotFoundException(NotFoundException):
    """Doctor directory lookup failures"""

    def __init__(self, doctor_id: str):
        super().__init__(f"Doctor {doctor_id} not found", "DOCTOR_NOT_FOUND")
        self.doctor_id = doctor_id


class AppointmentNotFoundException(NotFoundException):
    """Appointment lookup failures"""

    def __init__(self, appointment_id: str):
        super().__init__(f"Appointment {appointment_id} not found", "APPOINTMENT_NOT_FOUND")
        self.appointment_id = appointment_id


class AppointmentConflictException(LabTrackException):
    """Requested slot is already booked"""

    def __init__(self, doctor_id: str, day, time_slot: str):
        super().__init__(
            f"Doctor {doctor_id} is already booked on {day} at {time_slot}",
            "SLOT_TAKEN",
        )
        self.doctor_id = doctor_id
        self.day = day
        self.time_slot = time_slot

PATIENTS_URL = "/patients"
DEPARTMENTS_URL = "/departments"
DOCTORS_URL = "/doctors"
APPOINTMENTS_URL = "/appointments"
AVAILABLE_SLOTS_URL = APPOINTMENTS_URL + "/available-slots"

"""Module: exceptions."""

class CharityDirectoryError(Exception):
    """Base class for domain errors raised by the service layer."""

class MalformedImportRow(CharityDirectoryError):
    """An import row is missing a column the importer depends on."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"No expected column with name {column} in CSV file")

class PermissionDenied(CharityDirectoryError):
    pass

class RecordNotFound(CharityDirectoryError):
    pass

class DuplicateOrganisation(CharityDirectoryError):
    """Another active organisation already uses this name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"An organisation named '{name}' already exists")

SUPERADMIN_REQUIRED = "You must be signed in as a superadmin to perform this action!"

"""Standard exit codes for the cronledger CLI.

Scripts driving ``cronledger tick`` from an external cron rely on these
values to tell a failed job apart from a broken installation.
"""


class ExitCode:
    """Standard exit codes for cronledger.

    These codes follow common Unix conventions where possible:
    - 0: Success
    - 1: General error
    - 130: Script terminated by Ctrl+C (SIGINT)

    cronledger-specific codes:
    - 2: Configuration error
    - 3: Invalid cron expression
    - 4: Job registration error
    - 5: Run rejected (inactive, invalid, running or blocked job)
    - 6: Storage error
    - 7: Invalid argument
    - 8: Not found
    - 9: Job callback reported failure
    """

    SUCCESS = 0

    GENERAL_ERROR = 1

    CONFIGURATION_ERROR = 2
    INVALID_SCHEDULE = 3
    REGISTRATION_ERROR = 4
    RUN_REJECTED = 5
    STORAGE_ERROR = 6
    INVALID_ARGUMENT = 7
    NOT_FOUND = 8
    JOB_FAILED = 9

    CANCELLED = 130

    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the name of an exit code.

        Args:
            code: The exit code value

        Returns:
            Human-readable name for the exit code
        """
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.GENERAL_ERROR: "GENERAL_ERROR",
            cls.CONFIGURATION_ERROR: "CONFIGURATION_ERROR",
            cls.INVALID_SCHEDULE: "INVALID_SCHEDULE",
            cls.REGISTRATION_ERROR: "REGISTRATION_ERROR",
            cls.RUN_REJECTED: "RUN_REJECTED",
            cls.STORAGE_ERROR: "STORAGE_ERROR",
            cls.INVALID_ARGUMENT: "INVALID_ARGUMENT",
            cls.NOT_FOUND: "NOT_FOUND",
            cls.JOB_FAILED: "JOB_FAILED",
            cls.CANCELLED: "CANCELLED",
        }
        return names.get(code, f"UNKNOWN({code})")

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get the description of an exit code.

        Args:
            code: The exit code value

        Returns:
            Human-readable description for the exit code
        """
        descriptions = {
            cls.SUCCESS: "Operation completed successfully",
            cls.GENERAL_ERROR: "An unexpected error occurred",
            cls.CONFIGURATION_ERROR: "Configuration error or invalid config file",
            cls.INVALID_SCHEDULE: "Cron expression could not be parsed or never matches",
            cls.REGISTRATION_ERROR: "Job could not be registered",
            cls.RUN_REJECTED: "Job is not in a state that allows running it",
            cls.STORAGE_ERROR: "Execution ledger could not be read or written",
            cls.INVALID_ARGUMENT: "Invalid command-line argument",
            cls.NOT_FOUND: "Requested job or execution not found",
            cls.JOB_FAILED: "Job callback reported failure",
            cls.CANCELLED: "Operation cancelled by user",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

class DigitLabError(Exception):
    pass


class ConfigError(DigitLabError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"Configuration error: {self.message}"


class DataLoadError(DigitLabError):
    def __init__(self, message: str, source: str = "") -> None:
        self.message = message
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        source_info = f" from {self.source}" if self.source else ""
        return f"Failed to load digits{source_info}: {self.message}"


class StoreError(DigitLabError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"Trade store error: {self.message}"


class OrderError(DigitLabError):
    def __init__(self, message: str, contract_id: str = "") -> None:
        self.message = message
        self.contract_id = contract_id
        super().__init__(message)

    def __str__(self) -> str:
        contract_info = f" (contract {self.contract_id})" if self.contract_id else ""
        return f"Order failed{contract_info}: {self.message}"

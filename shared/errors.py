class AgentError(Exception):
    pass


class AdbError(AgentError):
    pass


class InspectionFailure(AgentError):
    pass


class OracleUnavailable(AgentError):
    pass


class OracleBusy(OracleUnavailable):
    pass


class TargetNotFound(AgentError):
    pass


class ExecutorFailure(AgentError):
    def __init__(self, action, detail=None):
        message = "executor rejected {}".format(action)
        if detail:
            message = "{}: {}".format(message, detail)
        super().__init__(message)
        self.action = action
        self.detail = detail


class SequenceViolation(AgentError):
    pass


class AutomationBusy(AgentError):
    pass

from oro.oro_runtime import ExecutionResult, OroHost, ScriptRunner, oro_api_method

__all__ = ["ExecutionResult", "OroHost", "ScriptRunner", "oro_api_method"]

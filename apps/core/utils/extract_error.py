def extract_validation_error_message(error):
    """
    Extract a clean, single-line message from a Django or DRF error, or from a
    serializer's ``errors`` mapping.
    """
    if isinstance(error, dict):
        if not error:
            return "Invalid input"
        first_field = next(iter(error))
        first_error = error[first_field]
        if isinstance(first_error, (list, tuple)) and first_error:
            first_error = first_error[0]
        if first_field == "non_field_errors":
            return str(first_error)
        return f"{first_field}: {first_error}"

    if hasattr(error, "message_dict") and error.message_dict:
        # Django ValidationError with field errors
        first_field = next(iter(error.message_dict))
        first_error = error.message_dict[first_field][0]
        return str(first_error)
    elif hasattr(error, "detail"):
        # DRF exceptions
        if isinstance(error.detail, dict):
            return extract_validation_error_message(error.detail)
        elif isinstance(error.detail, list):
            return str(error.detail[0]) if error.detail else "Invalid input"
        return str(error.detail)
    elif hasattr(error, "messages") and error.messages:
        # Django ValidationError with messages
        return str(error.messages[0])

    return str(error)

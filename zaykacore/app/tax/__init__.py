"""GST return builders."""

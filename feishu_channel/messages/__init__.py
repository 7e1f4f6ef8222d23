"""Message value objects and the Feishu content codec."""

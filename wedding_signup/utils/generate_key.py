# generate_key.py
from wedding_signup.utils.security import generate_fernet_key

# Generate a key for sealing credentials held by pending reservations
key = generate_fernet_key()
print("Generated Fernet Key:")
print(key)
print("Add this to your .env file as CREDENTIAL_ENCRYPTION_KEY")

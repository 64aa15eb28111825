"""
Génère une valeur pour REVIEW_ADMIN_PASSWORD_HASH.

Usage:
    python generate_hash.py "mot de passe"            # sha256 salé
    python generate_hash.py "mot de passe" --bcrypt   # bcrypt
"""
import argparse
import secrets

from storefront.auth.service import hash_password


def main() -> None:
    parser = argparse.ArgumentParser(description="Hash du mot de passe admin des avis")
    parser.add_argument("password")
    parser.add_argument("--bcrypt", action="store_true", help="bcrypt au lieu de sha256 salé")
    args = parser.parse_args()
    if args.bcrypt:
        print(hash_password(args.password, scheme="bcrypt"))
    else:
        print(hash_password(args.password, salt=secrets.token_hex(8)))


if __name__ == "__main__":
    main()

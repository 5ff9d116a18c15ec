# rsbootstrap/certbot_configurator.py
# -*- coding: utf-8 -*-
"""
Requests a TLS certificate with Certbot and its nginx plugin.

Certificate issuance is best effort: a missing e-mail address, a missing
certbot binary or a failed request is logged and never stops the
container from starting.
"""

import logging
import re
import subprocess
from typing import List, Optional

from common.command_utils import get_symbols, log_bootstrap, run_command

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

_IPV4_RE = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")


def build_certbot_command(email: str, domain: str) -> List[str]:
    return [
        "certbot",
        "-n",  # Run without interactive prompts.
        "--agree-tos",
        "--email",
        email,
        "--nginx",
        "--redirect",  # Redirect HTTP to HTTPS.
        "-d",
        domain,
    ]


def run_certbot_nginx(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Obtain a certificate for ``runestone_host`` and let certbot configure nginx.

    Returns:
        True if certbot succeeded, False if it was skipped or failed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    email = (app_settings.certbot_email or "").strip()
    domain = app_settings.runestone_host

    if not email:
        log_bootstrap(
            f"{symbols.get('warning', '!')} CERTBOT_EMAIL not set; will not attempt certbot setup -- NO https!!",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    if domain.lower() == "localhost" or _IPV4_RE.match(domain):
        log_bootstrap(
            f"{symbols.get('warning', '!')} Skipping certbot: '{domain}' is localhost or an IP address; a public FQDN is required.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    log_bootstrap(
        f"{symbols.get('step', '➡️')} Requesting a certificate for {domain} (contact {email})",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        run_command(
            build_certbot_command(email, domain),
            app_settings,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except subprocess.CalledProcessError:
        # Details were already logged by run_command.
        log_bootstrap(
            f"{symbols.get('warning', '!')} Certbot failed; continuing without https. See /var/log/letsencrypt/ for details.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False
    except OSError as e:
        log_bootstrap(
            f"{symbols.get('warning', '!')} Could not run certbot ({e}); continuing without https.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    log_bootstrap(
        f"{symbols.get('success', '✅')} You should be good for https",
        "success",
        logger_to_use,
        app_settings,
    )
    return True

"""Static files written into a new environment."""

GITIGNORE = """\
# WordPress core and content
wordpress/
uploads/

# Plugins and themes (each should have its own repo)
plugins/
themes/

# Database backups (contain sensitive data)
backups/*.sql
backups/*.sql.gz

# Environment and secrets (.env.example is the shareable copy)
.env

# System files
.DS_Store
Thumbs.db
*.log

# IDE files
.vscode/
.idea/
*.swp
*.swo
*~

# Docker volumes and temp
.docker/mysql-logs/*.log
*.tmp
"""

PHPINFO = "<?php phpinfo(); ?>\n"

from django.db import models

class Course(models.Model):
    """Subject an exam is set for; attempts are rolled up per course name."""
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=20, unique=True, help_text="Catalogue code, e.g. GEO101")

    class Meta:
        ordering = ['code']

    def __str__(self):
        return f"{self.name} ({self.code})"

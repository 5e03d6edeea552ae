"""fstab entry model."""

from pydantic import BaseModel, ConfigDict, Field


class FstabEntry(BaseModel):
    """One line of the persistent-mount table."""
    spec: str = Field(..., description="Device spec, e.g. UUID=... or a file path")
    mountpoint: str = Field(...)
    fstype: str = Field(...)
    options: str = Field(default="defaults")
    dump: int = Field(default=0, ge=0)
    passno: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def for_uuid(cls, uuid: str, mountpoint: str, fstype: str, options: str = "defaults") -> "FstabEntry":
        """Entry for a data filesystem mounted by UUID."""
        return cls(
            spec=f"UUID={uuid}",
            mountpoint=mountpoint,
            fstype=fstype,
            options=options,
            dump=0,
            passno=2,
        )

    @classmethod
    def for_swap(cls, path: str) -> "FstabEntry":
        """Entry for a swap file."""
        return cls(spec=path, mountpoint="none", fstype="swap", options="sw")

    def render(self) -> str:
        """Render the entry as an fstab line (without newline)."""
        return f"{self.spec} {self.mountpoint} {self.fstype} {self.options} {self.dump} {self.passno}"

# camera.py
import numpy as np


def normalize(v):
    return v / np.linalg.norm(v)


class Camera:
    """Pinhole camera on a sphere of radius ``radius`` around ``target``.

    ``theta`` is the azimuth and ``phi`` the polar angle, both in degrees;
    ``phi = 90`` keeps the camera in the equatorial plane. The image plane
    is square with ``res`` pixels per side.
    """

    def __init__(self, res, theta=0.0, phi=90.0, radius=6.0, fov=45.0,
                 target=(0.0, 0.0, 0.0), up=(0.0, 0.0, 1.0)):
        self.res = res
        self.theta = theta
        self.phi = phi
        self.radius = radius
        self.fov = fov
        self.target = np.asarray(target, dtype=np.float64)
        self.up = np.asarray(up, dtype=np.float64)

        th = np.deg2rad(theta)
        ph = np.deg2rad(phi)
        self.position = self.target + radius * np.array([
            np.cos(th) * np.sin(ph),
            np.sin(th) * np.sin(ph),
            np.cos(ph),
        ])

    @classmethod
    def orbit(cls, num_images, res, **kwargs):
        """Cameras evenly spaced around the orbit, starting at theta = 0."""
        dth = 360.0 / num_images
        return [cls(res, theta=i * dth, **kwargs) for i in range(num_images)]

    @property
    def f(self):
        return 1.0 / np.tan(np.deg2rad(self.fov / 2.0))

    @property
    def focal_length(self):
        """Focal length in pixels, same for both axes."""
        return self.f * self.res / 2.0

    @property
    def camera_angle_x(self):
        return np.deg2rad(self.fov)

    def look_at(self):
        """World-to-camera transform; the camera looks down its -z axis."""
        forward = normalize(self.target - self.position)
        side = normalize(np.cross(forward, self.up))
        up = np.cross(side, forward)

        m = np.eye(4)
        m[0, :3] = side
        m[1, :3] = up
        m[2, :3] = -forward
        m[:3, 3] = -m[:3, :3] @ self.position
        return m

    def camera_to_world(self):
        return np.linalg.inv(self.look_at())

    def ray_directions(self):
        """Unnormalised world-space ray directions, shape ``(res, res, 3)``, indexed ``[i, j]``."""
        c2w = self.camera_to_world()
        half = self.res / 2.0
        i, j = np.meshgrid(np.arange(self.res, dtype=np.float64),
                           np.arange(self.res, dtype=np.float64), indexing="ij")
        points = np.stack([
            i / half - 1.0,
            j / half - 1.0,
            np.full_like(i, -self.f),
            np.ones_like(i),
        ], axis=-1)
        world = points @ c2w.T
        world = world[..., :3] / world[..., 3:4]
        return world - self.position
